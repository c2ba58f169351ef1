"""``multipart/related`` body encoding for single-shot uploads.

The body always has exactly two parts, in this order::

    --<boundary>
    Content-Type: application/json; charset=UTF-8

    {metadata json}
    --<boundary>
    Content-Type: <mime type>

    <raw payload bytes>
    --<boundary>--

Boundaries come from a fresh random nonce on every call and are rejected
and regenerated if they occur anywhere in the encoded parts.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any, Callable

logger = logging.getLogger(__name__)

CRLF = b"\r\n"
METADATA_CONTENT_TYPE = "application/json; charset=UTF-8"
BOUNDARY_PREFIX = "geminifs-boundary-"
MAX_BOUNDARY_ATTEMPTS = 16


def random_boundary() -> str:
    return f"{BOUNDARY_PREFIX}{uuid.uuid4().hex}"


def multipart_content_type(boundary: str) -> str:
    return f"multipart/related; boundary={boundary}"


class MultipartBodyBuilder:
    """Encodes a metadata object plus one binary payload.

    Args:
        boundary_factory: Zero-argument callable returning a candidate
            boundary token.  Defaults to :func:`random_boundary`.
    """

    def __init__(self, boundary_factory: Callable[[], str] = random_boundary) -> None:
        self._boundary_factory = boundary_factory

    def build(
        self,
        metadata: dict[str, Any],
        payload: bytes,
        mime_type: str,
    ) -> tuple[bytes, str]:
        """Return ``(body, boundary)`` for a two-part ``multipart/related`` upload.

        Raises:
            RuntimeError: If no collision-free boundary could be generated.
        """
        metadata_bytes = json.dumps(metadata).encode("utf-8")
        boundary = self._pick_boundary(metadata_bytes, payload)
        delimiter = f"--{boundary}".encode("ascii")

        body = b"".join(
            [
                delimiter, CRLF,
                f"Content-Type: {METADATA_CONTENT_TYPE}".encode("ascii"), CRLF,
                CRLF,
                metadata_bytes, CRLF,
                delimiter, CRLF,
                f"Content-Type: {mime_type}".encode("latin-1"), CRLF,
                CRLF,
                payload, CRLF,
                delimiter, b"--", CRLF,
            ]
        )
        logger.debug(
            "Built multipart body: %d bytes (payload %d bytes, boundary %s)",
            len(body),
            len(payload),
            boundary,
        )
        return body, boundary

    def _pick_boundary(self, metadata_bytes: bytes, payload: bytes) -> str:
        for _ in range(MAX_BOUNDARY_ATTEMPTS):
            boundary = self._boundary_factory()
            token = boundary.encode("ascii")
            if token not in payload and token not in metadata_bytes:
                return boundary
            logger.debug("Boundary %s occurs in payload, regenerating", boundary)
        raise RuntimeError(
            f"Could not generate a boundary absent from the payload "
            f"after {MAX_BOUNDARY_ATTEMPTS} attempts"
        )
