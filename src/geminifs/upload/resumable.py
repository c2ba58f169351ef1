"""Two-phase resumable upload protocol for large payloads.

1. **start** -- POST the metadata JSON with ``X-Goog-Upload-Command: start``
   and the payload's length/type declared in dedicated headers.  The server
   answers with the session URL in ``X-Goog-Upload-URL``.
2. **finalize** -- POST the whole payload to the session URL at offset 0 with
   ``X-Goog-Upload-Command: upload, finalize``.

There is no mid-protocol resume: the payload is written in one piece and a
failed finalize means starting over with a new session.  A session whose
finalize failed may leave an orphaned resource on the server; the client
has no handle for it.
"""

from __future__ import annotations

import logging
from typing import Any

from geminifs.errors import ProtocolError
from geminifs.models import ResourceHandle, ResumableSession
from geminifs.transport import GeminiTransport, decode_json_object

logger = logging.getLogger(__name__)

UPLOAD_URL_HEADER = "X-Goog-Upload-URL"


class ResumableUploadClient:
    """Runs the start/finalize handshake against one upload endpoint."""

    def __init__(self, transport: GeminiTransport) -> None:
        self._transport = transport

    async def start(
        self,
        endpoint: str,
        metadata: dict[str, Any],
        content_length: int,
        content_type: str,
    ) -> ResumableSession:
        """Open a session.

        Raises:
            ProtocolError: If the response carries no session URL.
            ApiError: On HTTP or transport failure.
        """
        response = await self._transport.request(
            "POST",
            endpoint,
            headers={
                "X-Goog-Upload-Protocol": "resumable",
                "X-Goog-Upload-Command": "start",
                "X-Goog-Upload-Header-Content-Length": str(content_length),
                "X-Goog-Upload-Header-Content-Type": content_type,
                "Content-Type": "application/json",
            },
            json=metadata,
        )
        upload_url = response.headers.get(UPLOAD_URL_HEADER)
        if not upload_url:
            raise ProtocolError(
                "Failed to get resumable upload URL from response",
                response.status_code,
            )
        logger.debug("Opened resumable session for %d bytes", content_length)
        return ResumableSession(
            upload_url=upload_url,
            content_length=content_length,
            content_type=content_type,
        )

    async def finalize(
        self,
        session: ResumableSession,
        payload: bytes,
        result_key: str | None = "file",
    ) -> dict[str, Any]:
        """Write the payload at offset 0 and close the session.

        Returns:
            The created resource, unwrapped from ``result_key`` when given.
        """
        response = await self._transport.request(
            "POST",
            session.upload_url,
            headers={
                "X-Goog-Upload-Offset": "0",
                "X-Goog-Upload-Command": "upload, finalize",
                "Content-Type": session.content_type,
            },
            content=payload,
        )
        envelope = decode_json_object(response)
        if result_key is None:
            return envelope
        resource = envelope.get(result_key)
        if not isinstance(resource, dict):
            raise ProtocolError(
                f"Finalize response has no {result_key!r} object",
                response.status_code,
            )
        return resource

    async def upload(
        self,
        metadata: dict[str, Any],
        payload: bytes,
        mime_type: str,
        *,
        endpoint: str,
        result_key: str | None = "file",
    ) -> ResourceHandle:
        """Run both phases in order and return the created resource's handle."""
        session = await self.start(endpoint, metadata, len(payload), mime_type)
        resource = await self.finalize(session, payload, result_key=result_key)
        name = resource.get("name")
        if not name:
            raise ProtocolError("Uploaded resource has no name")
        logger.info("Resumable upload complete: %s (%d bytes)", name, len(payload))
        return ResourceHandle(name=name, resource=resource)
