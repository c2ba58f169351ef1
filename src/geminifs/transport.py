"""Thin httpx wrapper for the Gemini REST surface.

Owns the base URL, the API key header and the request timeout.  The key
travels in ``x-goog-api-key`` and never in the URL, so request URLs quoted
in error messages carry no credential.

Every failure leaves this module as an :class:`~geminifs.errors.ApiError`:
HTTP status errors and transport errors from httpx are routed through
:func:`~geminifs.errors.normalize_error` before they are raised.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from geminifs.config import DEFAULT_API_VERSION, DEFAULT_BASE_URL, DEFAULT_REQUEST_TIMEOUT
from geminifs.errors import ProtocolError, normalize_error

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-goog-api-key"


class GeminiTransport:
    """Issues authenticated requests against the Gemini API.

    Relative paths are resolved against ``base_url``.  Absolute URLs (the
    resumable session URL) are requested as-is, without re-adding the key,
    because the server already bound the session to the caller.

    Usage::

        transport = GeminiTransport(api_key="...")
        file_obj = await transport.request_json("GET", "v1beta/files/abc")
        await transport.aclose()
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("api_key must not be empty")
        self._api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.api_version = api_version
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    # ------------------------------------------------------------------
    # Path helpers
    # ------------------------------------------------------------------

    def api_path(self, name: str) -> str:
        """``files/abc`` -> ``v1beta/files/abc``."""
        return f"{self.api_version}/{name.lstrip('/')}"

    def upload_path(self, name: str) -> str:
        """``files`` -> ``upload/v1beta/files``."""
        return f"upload/{self.api_version}/{name.lstrip('/')}"

    def _url(self, path: str) -> tuple[str, bool]:
        if path.startswith(("http://", "https://")):
            return path, True
        return f"{self.base_url}/{path.lstrip('/')}", False

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        """Send one request and return the successful response.

        Raises:
            ApiError: On any non-2xx status or transport failure.
        """
        url, absolute = self._url(path)
        query = {k: v for k, v in (params or {}).items() if v is not None}
        request_headers = dict(headers) if headers else {}
        if not absolute:
            request_headers[API_KEY_HEADER] = self._api_key

        kwargs: dict[str, Any] = {}
        if json is not None:
            kwargs["json"] = json
        elif content is not None:
            kwargs["content"] = content

        logger.debug("%s %s", method, url)
        try:
            response = await self._client.request(
                method,
                url,
                params=query or None,
                headers=request_headers or None,
                **kwargs,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            error = normalize_error(exc)
            logger.debug("%s %s failed: %s", method, url, error)
            raise error from exc
        return response

    async def request_json(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Like :meth:`request` but decodes the JSON object body.

        An empty body decodes to ``{}``.

        Raises:
            ProtocolError: If the body is not a JSON object.
        """
        response = await self.request(method, path, **kwargs)
        return decode_json_object(response)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> GeminiTransport:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def decode_json_object(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        data = response.json()
    except ValueError as exc:
        raise ProtocolError(
            f"Response body is not valid JSON: {response.text[:200]}",
            response.status_code,
        ) from exc
    if not isinstance(data, dict):
        raise ProtocolError(
            f"Expected a JSON object, got {type(data).__name__}",
            response.status_code,
        )
    return data
