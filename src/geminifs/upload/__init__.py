"""Upload pipeline for the Gemini Files API and File Search stores.

Public API
----------
.. autoclass:: UploadStrategySelector
.. autoclass:: MultipartBodyBuilder
.. autoclass:: ResumableUploadClient
.. autoclass:: FilesDestination
.. autoclass:: StoreDestination
"""

from geminifs.upload.metadata_builder import (
    build_chunking_config,
    build_custom_metadata,
    build_custom_metadata_list,
    build_file_metadata,
    build_import_file_request,
    build_store_upload_config,
    parse_metadata_entries,
)
from geminifs.upload.multipart import MultipartBodyBuilder, multipart_content_type
from geminifs.upload.resumable import ResumableUploadClient
from geminifs.upload.strategy import (
    FilesDestination,
    StoreDestination,
    UploadDestination,
    UploadStrategySelector,
    choose_plan,
)

__all__ = [
    "FilesDestination",
    "MultipartBodyBuilder",
    "ResumableUploadClient",
    "StoreDestination",
    "UploadDestination",
    "UploadStrategySelector",
    "build_chunking_config",
    "build_custom_metadata",
    "build_custom_metadata_list",
    "build_file_metadata",
    "build_import_file_request",
    "build_store_upload_config",
    "choose_plan",
    "multipart_content_type",
    "parse_metadata_entries",
]
