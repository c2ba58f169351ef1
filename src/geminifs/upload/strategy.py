"""Upload transport selection.

Payloads up to and including 20 MiB go out as one ``multipart/related``
POST; anything larger uses the resumable protocol.  The threshold is fixed:
it marks where holding one multipart body in memory stops being practical,
not a tunable business rule.

Two destinations are supported:

* :class:`FilesDestination` -- the Files API (``upload/v1beta/files``).
* :class:`StoreDestination` -- a File Search store
  (``upload/v1beta/fileSearchStores/{id}:uploadToFileSearchStore``); the
  server answers with a long-running operation whose name is the handle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from geminifs.errors import ProtocolError
from geminifs.models import (
    RESUMABLE_THRESHOLD_BYTES,
    ChunkingOptions,
    MetadataEntry,
    ResourceHandle,
    UploadPlan,
    UploadRequest,
)
from geminifs.names import normalize_store_name
from geminifs.transport import GeminiTransport, decode_json_object
from geminifs.upload.metadata_builder import build_file_metadata, build_store_upload_config
from geminifs.upload.multipart import MultipartBodyBuilder, multipart_content_type
from geminifs.upload.resumable import ResumableUploadClient

logger = logging.getLogger(__name__)


def choose_plan(size_bytes: int) -> UploadPlan:
    """RESUMABLE iff ``size_bytes`` is strictly above 20 MiB."""
    if size_bytes > RESUMABLE_THRESHOLD_BYTES:
        return UploadPlan.RESUMABLE
    return UploadPlan.INLINE


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FilesDestination:
    """Upload into the Files API (temporary files, 48h TTL)."""

    default_display_name = "unnamed_file"
    result_key = "file"

    def endpoint(self, transport: GeminiTransport) -> str:
        return transport.upload_path("files")

    def build_metadata(self, request: UploadRequest) -> dict[str, Any]:
        return build_file_metadata(request.display_name or self.default_display_name)

    def inline_headers(self) -> dict[str, str]:
        return {}


@dataclass(frozen=True)
class StoreDestination:
    """Upload straight into a File Search store as an indexed document."""

    store_name: str
    metadata_entries: tuple[MetadataEntry, ...] = ()
    chunking: ChunkingOptions | None = None

    default_display_name = "unnamed_document"
    result_key = None

    def endpoint(self, transport: GeminiTransport) -> str:
        store = normalize_store_name(self.store_name)
        return transport.upload_path(f"{store}:uploadToFileSearchStore")

    def build_metadata(self, request: UploadRequest) -> dict[str, Any]:
        return build_store_upload_config(
            request.display_name or self.default_display_name,
            self.metadata_entries,
            self.chunking,
        )

    def inline_headers(self) -> dict[str, str]:
        return {"X-Goog-Upload-Protocol": "multipart"}


UploadDestination = FilesDestination | StoreDestination


# ---------------------------------------------------------------------------
# Selector
# ---------------------------------------------------------------------------


class UploadStrategySelector:
    """Picks the upload transport by size and issues the upload.

    Usage::

        selector = UploadStrategySelector(transport)
        handle = await selector.upload(
            UploadRequest(payload=data, mime_type="application/pdf", display_name="report.pdf"),
            FilesDestination(),
        )
    """

    def __init__(
        self,
        transport: GeminiTransport,
        multipart: MultipartBodyBuilder | None = None,
        resumable: ResumableUploadClient | None = None,
    ) -> None:
        self._transport = transport
        self._multipart = multipart or MultipartBodyBuilder()
        self._resumable = resumable or ResumableUploadClient(transport)

    async def upload(
        self,
        request: UploadRequest,
        destination: UploadDestination | None = None,
    ) -> ResourceHandle:
        """Upload one payload and return the created resource's handle.

        Raises:
            ApiError: On any HTTP, transport or protocol failure.  No handle
                is returned for a failed upload.
        """
        destination = destination or FilesDestination()
        plan = choose_plan(request.size_bytes)
        logger.debug(
            "Uploading %d bytes (%s) via %s", request.size_bytes, request.mime_type, plan.value
        )
        metadata = destination.build_metadata(request)
        endpoint = destination.endpoint(self._transport)

        if plan is UploadPlan.RESUMABLE:
            return await self._resumable.upload(
                metadata,
                request.payload,
                request.mime_type,
                endpoint=endpoint,
                result_key=destination.result_key,
            )
        return await self._upload_inline(request, destination, metadata, endpoint)

    async def _upload_inline(
        self,
        request: UploadRequest,
        destination: UploadDestination,
        metadata: dict[str, Any],
        endpoint: str,
    ) -> ResourceHandle:
        body, boundary = self._multipart.build(metadata, request.payload, request.mime_type)
        headers = {
            **destination.inline_headers(),
            "Content-Type": multipart_content_type(boundary),
        }
        response = await self._transport.request("POST", endpoint, headers=headers, content=body)
        envelope = decode_json_object(response)

        resource = envelope
        if destination.result_key and isinstance(envelope.get(destination.result_key), dict):
            resource = envelope[destination.result_key]
        name = resource.get("name")
        if not name:
            raise ProtocolError("Upload response has no resource name", response.status_code)
        logger.info("Uploaded %s (%d bytes)", name, request.size_bytes)
        return ResourceHandle(name=name, resource=resource)
