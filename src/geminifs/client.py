"""High-level client for the Gemini Files API and File Search stores.

Wires one :class:`~geminifs.transport.GeminiTransport` into the upload
selector, the processing poller and the grounded query executor::

    async with GeminiFileStoreClient(api_key="...") as client:
        handle = await client.upload_file(data, "application/pdf", "report.pdf")
        await client.wait_for_file(handle.name)

        op = await client.upload_document("my-store", data, "application/pdf", "report.pdf")
        await client.wait_for_operation(op.name)

        op = await client.import_file("my-store", handle.name)
        await client.wait_for_operation(op.name)

        answer = await client.query("my-store", "What does the report conclude?")

Every method raises :class:`~geminifs.errors.ApiError` subclasses only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Sequence

import httpx

from geminifs.config import ClientConfig
from geminifs.models import (
    ChunkingOptions,
    GroundedAnswer,
    MetadataEntry,
    ProcessingResult,
    ResourceHandle,
    UploadRequest,
)
from geminifs.errors import ProtocolError
from geminifs.names import normalize_file_name, normalize_store_name
from geminifs.poller import ProcessingPoller, read_file_status, read_operation_status
from geminifs.search.query import GroundedQueryExecutor
from geminifs.transport import GeminiTransport
from geminifs.upload.metadata_builder import build_import_file_request
from geminifs.upload.strategy import FilesDestination, StoreDestination, UploadStrategySelector

logger = logging.getLogger(__name__)


class GeminiFileStoreClient:
    """Upload, wait and query against one API key.

    Args:
        api_key: Gemini API key.  Falls back to ``config.api_key``.
        config: Optional :class:`ClientConfig`; defaults are used otherwise.
        http_client: Optional pre-built ``httpx.AsyncClient`` (tests inject
            one backed by ``httpx.MockTransport``).
        clock: Monotonic clock used by the poller.
        sleep: Async sleep used by the poller.
    """

    def __init__(
        self,
        api_key: str | None = None,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config or ClientConfig()
        key = api_key or self.config.api_key
        if not key:
            raise ValueError("An API key is required")
        self._transport = GeminiTransport(
            api_key=key,
            base_url=self.config.base_url,
            api_version=self.config.api_version,
            timeout=self.config.request_timeout,
            client=http_client,
        )
        self._uploader = UploadStrategySelector(self._transport)
        self._query = GroundedQueryExecutor(self._transport, self.config.default_model)
        self._file_poller = ProcessingPoller(
            self._get_resource, read_file_status, clock=clock, sleep=sleep
        )
        self._operation_poller = ProcessingPoller(
            self._get_resource, read_operation_status, clock=clock, sleep=sleep
        )

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def upload_file(
        self,
        payload: bytes,
        mime_type: str | None = None,
        display_name: str | None = None,
    ) -> ResourceHandle:
        """Upload a payload to the Files API.  Returns the ``files/...`` handle."""
        request = UploadRequest(
            payload=payload,
            mime_type=mime_type or "",
            display_name=display_name or "",
        )
        return await self._uploader.upload(request, FilesDestination())

    async def upload_document(
        self,
        store_name: str,
        payload: bytes,
        mime_type: str | None = None,
        display_name: str | None = None,
        metadata: Sequence[MetadataEntry] = (),
        chunking: ChunkingOptions | None = None,
    ) -> ResourceHandle:
        """Upload a payload into a File Search store.

        Returns:
            The handle of the long-running import operation; pass its name to
            :meth:`wait_for_operation`.
        """
        request = UploadRequest(
            payload=payload,
            mime_type=mime_type or "",
            display_name=display_name or "",
        )
        destination = StoreDestination(
            store_name=store_name,
            metadata_entries=tuple(metadata),
            chunking=chunking,
        )
        return await self._uploader.upload(request, destination)

    async def import_file(
        self,
        store_name: str,
        file_name: str,
        metadata: Sequence[MetadataEntry] = (),
        chunking: ChunkingOptions | None = None,
    ) -> ResourceHandle:
        """Import an already uploaded Files API file into a File Search store.

        Returns:
            The handle of the long-running import operation; pass its name to
            :meth:`wait_for_operation`.
        """
        store = normalize_store_name(store_name)
        body = build_import_file_request(normalize_file_name(file_name), metadata, chunking)
        operation = await self._transport.request_json(
            "POST",
            self._transport.api_path(f"{store}:importFile"),
            headers={"Content-Type": "application/json"},
            json=body,
        )
        name = operation.get("name")
        if not name:
            raise ProtocolError("importFile response has no operation name")
        logger.info("Importing %s into %s: %s", body["file_name"], store, name)
        return ResourceHandle(name=name, resource=operation)

    # ------------------------------------------------------------------
    # Waiting
    # ------------------------------------------------------------------

    async def wait_for_file(
        self,
        file_name: str,
        timeout: float | None = None,
        interval: float | None = None,
    ) -> ProcessingResult:
        """Poll a file until ACTIVE (``files/`` prefix optional)."""
        return await self._file_poller.wait_until_active(
            normalize_file_name(file_name),
            self._or_default(timeout, self.config.poll_timeout_seconds),
            self._or_default(interval, self.config.poll_interval_seconds),
        )

    async def wait_for_operation(
        self,
        operation_name: str,
        timeout: float | None = None,
        interval: float | None = None,
    ) -> ProcessingResult:
        """Poll a long-running operation until ``done``.  The name is used verbatim."""
        return await self._operation_poller.wait_until_active(
            operation_name.strip(),
            self._or_default(timeout, self.config.poll_timeout_seconds),
            self._or_default(interval, self.config.poll_interval_seconds),
        )

    # ------------------------------------------------------------------
    # Query
    # ------------------------------------------------------------------

    async def query(
        self,
        store_names: str | Sequence[str],
        query_text: str,
        model: str | None = None,
        metadata_filter: str | None = None,
    ) -> GroundedAnswer:
        return await self._query.query(store_names, query_text, model, metadata_filter)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> GeminiFileStoreClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @staticmethod
    def _or_default(value: float | None, default: float) -> float:
        return default if value is None else value

    async def _get_resource(self, name: str) -> dict[str, Any]:
        return await self._transport.request_json("GET", self._transport.api_path(name))
