"""Error taxonomy and transport error normalization.

Every failure surfaced by the client is an :class:`ApiError` carrying a
stable :class:`ErrorKind`.  Raw failures reach us in several shapes
depending on which call path produced them:

  (a) a structured response: ``response.status`` + ``response.data.error.message``
  (b) a wrapped transport failure whose ``cause.response.body`` is a JSON
      string or object with ``error.message``
  (c) a flat ``description`` field
  (d) a bare ``message``

:func:`normalize_error` runs an ordered tuple of extraction strategies over
the raw value and keeps the first non-empty message.  Strategies read both
attributes and mapping keys, so plain dicts, ad-hoc objects and httpx
exceptions are all accepted.

Nothing in this module retries.  Callers decide with :func:`is_retryable`.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Category of a normalized failure."""

    BAD_REQUEST = "bad_request"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    UNKNOWN = "unknown"
    PROTOCOL_ERROR = "protocol_error"
    PROCESSING_FAILED = "processing_failed"
    PROCESSING_TIMEOUT = "processing_timeout"


# Stable prefixes so downstream tooling can branch without matching prose.
ERROR_LABELS: dict[ErrorKind, str] = {
    ErrorKind.BAD_REQUEST: "Bad request",
    ErrorKind.FORBIDDEN: "Forbidden",
    ErrorKind.NOT_FOUND: "Not found",
    ErrorKind.RATE_LIMITED: "Rate limited",
    ErrorKind.UNKNOWN: "Unknown error",
    ErrorKind.PROTOCOL_ERROR: "Protocol error",
    ErrorKind.PROCESSING_FAILED: "Processing failed",
    ErrorKind.PROCESSING_TIMEOUT: "Processing timeout",
}

_STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.BAD_REQUEST,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    429: ErrorKind.RATE_LIMITED,
}

DEFAULT_MESSAGE = "Unknown API error"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ApiError(Exception):
    """A typed failure from the remote service or the transport beneath it.

    Attributes:
        kind: The :class:`ErrorKind` category.
        message: The remote service's own message when one was available.
        http_status: HTTP status code, or ``None`` for transport-only failures.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        http_status: int | None = None,
    ) -> None:
        self.kind = kind
        self.message = message
        self.http_status = http_status
        super().__init__(f"{ERROR_LABELS[kind]}: {message}")

    @property
    def label(self) -> str:
        return ERROR_LABELS[self.kind]

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form handed to the surrounding shell."""
        return {
            "error": str(self),
            "kind": self.kind.value,
            "message": self.message,
            "httpStatus": self.http_status,
        }

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value!r}, "
            f"message={self.message!r}, http_status={self.http_status!r})"
        )


class ProtocolError(ApiError):
    """Raised when a handshake response is missing a required element."""

    def __init__(self, message: str, http_status: int | None = None) -> None:
        super().__init__(ErrorKind.PROTOCOL_ERROR, message, http_status)


class ProcessingFailedError(ApiError):
    """Raised when the server reports a terminal FAILED processing state."""

    def __init__(self, name: str, detail: Any = None) -> None:
        self.name = name
        self.detail = detail
        message = f"{name}. Error: {_describe_detail(detail)}"
        super().__init__(ErrorKind.PROCESSING_FAILED, message)


class ProcessingTimeoutError(ApiError):
    """Raised when processing is still pending after the deadline."""

    def __init__(self, name: str, timeout: float) -> None:
        self.name = name
        self.timeout = timeout
        message = (
            f"{name}. Maximum wait time of {timeout:g} seconds exceeded."
        )
        super().__init__(ErrorKind.PROCESSING_TIMEOUT, message)


def _describe_detail(detail: Any) -> str:
    if not detail:
        return "Unknown error"
    if isinstance(detail, dict):
        return str(detail.get("message") or json.dumps(detail, sort_keys=True))
    return str(detail)


def is_retryable(exc: BaseException) -> bool:
    """Return True when re-issuing the failed call may succeed.

    Rate limits and uncategorized transport failures are worth retrying;
    client errors and terminal processing outcomes are not.
    """
    if not isinstance(exc, ApiError):
        return False
    return exc.kind in (ErrorKind.RATE_LIMITED, ErrorKind.UNKNOWN)


# ---------------------------------------------------------------------------
# Extraction strategies
# ---------------------------------------------------------------------------

Extraction = tuple[Optional[str], Optional[int]]
Strategy = Callable[[Any], Extraction]


def _field(obj: Any, name: str) -> Any:
    """Read *name* from a mapping or an attribute, ``None`` when absent."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    try:
        return getattr(obj, name, None)
    except Exception:
        # Some response objects raise on lazy attributes (e.g. unread bodies).
        return None


def _nested_error_message(payload: Any) -> str | None:
    message = _field(_field(payload, "error"), "message")
    return message if isinstance(message, str) and message else None


def _message_from_body(body: Any) -> str | None:
    """Pull ``error.message`` out of a body; unparseable text is kept verbatim."""
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if isinstance(body, str):
        if not body.strip():
            return None
        try:
            parsed = json.loads(body)
        except ValueError:
            return body
        return _nested_error_message(parsed)
    return _nested_error_message(body)


def _from_cause_body(raw: Any) -> Extraction:
    """Shape (b): wrapped failure whose cause carries the response body."""
    body = _field(_field(_field(raw, "cause"), "response"), "body")
    return _message_from_body(body), None


def _from_description(raw: Any) -> Extraction:
    """Shape (c): flat ``description`` field."""
    description = _field(raw, "description")
    if isinstance(description, str) and description:
        return description, None
    return None, None


def _response_data(response: Any) -> Any:
    data = _field(response, "data")
    if data is not None:
        return data
    # httpx.Response exposes the payload through .json() / .text
    reader = _field(response, "json")
    if callable(reader):
        try:
            return reader()
        except ValueError:
            return _field(response, "text")
    return None


def _from_response_data(raw: Any) -> Extraction:
    """Shape (a): structured response with a nested ``error.message``."""
    response = _field(raw, "response")
    if response is None:
        return None, None
    return _message_from_body(_response_data(response)), None


def _from_message(raw: Any) -> Extraction:
    """Shape (d): bare ``message``; falls back to ``str(exc)`` for exceptions.

    An httpx status error with an empty body is described by its status line
    only, since ``str(exc)`` quotes the full request URL.
    """
    message = _field(raw, "message")
    if isinstance(message, str) and message:
        return message, None
    status_line = _status_line(_field(raw, "response"))
    if status_line:
        return status_line, None
    if isinstance(raw, BaseException) and str(raw):
        return str(raw), None
    if isinstance(raw, str) and raw:
        return raw, None
    return None, None


def _status_line(response: Any) -> str | None:
    status = _as_status(_field(response, "status_code"))
    if status is None:
        return None
    reason = _field(response, "reason_phrase") or ""
    return f"HTTP {status} {reason}".rstrip()


MESSAGE_STRATEGIES: tuple[Strategy, ...] = (
    _from_cause_body,
    _from_description,
    _from_response_data,
    _from_message,
)


def _status_from_http_code(raw: Any) -> Extraction:
    return None, _as_status(_field(raw, "httpCode") or _field(raw, "http_code"))


def _status_from_response(raw: Any) -> Extraction:
    response = _field(raw, "response")
    status = _field(response, "status")
    if status is None:
        status = _field(response, "status_code")
    return None, _as_status(status)


STATUS_STRATEGIES: tuple[Strategy, ...] = (
    _status_from_http_code,
    _status_from_response,
)


def _as_status(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def extract_message(raw: Any) -> str | None:
    """Run :data:`MESSAGE_STRATEGIES` in order; first non-empty message wins."""
    for strategy in MESSAGE_STRATEGIES:
        message, _ = strategy(raw)
        if message:
            return message
    return None


def extract_status(raw: Any) -> int | None:
    """Run :data:`STATUS_STRATEGIES` in order; first status found wins."""
    for strategy in STATUS_STRATEGIES:
        _, status = strategy(raw)
        if status is not None:
            return status
    return None


def classify_status(status: int | None) -> ErrorKind:
    if status is None:
        return ErrorKind.UNKNOWN
    return _STATUS_KINDS.get(status, ErrorKind.UNKNOWN)


def normalize_error(raw: Any) -> ApiError:
    """Convert any raised transport/API error into a typed :class:`ApiError`.

    Already-normalized errors pass through unchanged.

    Args:
        raw: The raised exception, or any dict/object describing a failure.

    Returns:
        An :class:`ApiError` whose ``message`` is the remote service's text
        when available.
    """
    if isinstance(raw, ApiError):
        return raw

    message = extract_message(raw) or DEFAULT_MESSAGE
    status = extract_status(raw)
    kind = classify_status(status)
    logger.debug("Normalized %s -> %s (status=%s)", type(raw).__name__, kind.value, status)
    return ApiError(kind, message, status)
