"""Gemini Files API / File Search store client: upload, wait, grounded query."""

__version__ = "0.1.0"

from geminifs.client import GeminiFileStoreClient
from geminifs.errors import (
    ApiError,
    ErrorKind,
    ProcessingFailedError,
    ProcessingTimeoutError,
    ProtocolError,
    is_retryable,
    normalize_error,
)
from geminifs.models import (
    GroundedAnswer,
    ProcessingResult,
    ProcessingStatus,
    ResourceHandle,
    Source,
    UploadPlan,
    UploadRequest,
)

__all__ = [
    "ApiError",
    "ErrorKind",
    "GeminiFileStoreClient",
    "GroundedAnswer",
    "ProcessingFailedError",
    "ProcessingResult",
    "ProcessingStatus",
    "ProcessingTimeoutError",
    "ProtocolError",
    "ResourceHandle",
    "Source",
    "UploadPlan",
    "UploadRequest",
    "__version__",
    "is_retryable",
    "normalize_error",
]
