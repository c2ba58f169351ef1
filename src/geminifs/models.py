"""Data models and enums for the Gemini file store client."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Payloads above this size go through the resumable protocol.
RESUMABLE_THRESHOLD_BYTES = 20 * 1024 * 1024

DEFAULT_MIME_TYPE = "application/octet-stream"
MAX_DISPLAY_NAME_LENGTH = 512


class UploadPlan(str, Enum):
    """Transport used for a single upload call."""

    INLINE = "inline"
    RESUMABLE = "resumable"


class ProcessingStatus(str, Enum):
    """Server-side processing state of an uploaded resource."""

    PROCESSING = "PROCESSING"
    ACTIVE = "ACTIVE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not ProcessingStatus.PROCESSING


class MetadataValueType(str, Enum):
    STRING = "string"
    NUMERIC = "numeric"


@dataclass(frozen=True)
class UploadRequest:
    """One binary payload to upload.  Immutable once constructed."""

    payload: bytes
    mime_type: str = DEFAULT_MIME_TYPE
    display_name: str = ""
    size_bytes: int = -1

    def __post_init__(self) -> None:
        payload = bytes(self.payload)
        object.__setattr__(self, "payload", payload)
        if self.size_bytes == -1:
            object.__setattr__(self, "size_bytes", len(payload))
        elif self.size_bytes != len(payload):
            raise ValueError(
                f"size_bytes={self.size_bytes} does not match payload length {len(payload)}"
            )
        if not self.mime_type:
            object.__setattr__(self, "mime_type", DEFAULT_MIME_TYPE)


@dataclass(frozen=True)
class ResumableSession:
    """Session opened by the resumable start exchange; finalized once."""

    upload_url: str
    content_length: int
    content_type: str


@dataclass(frozen=True)
class ResourceHandle:
    """Server-assigned resource name plus the JSON resource returned with it."""

    name: str
    resource: dict[str, Any] = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ProcessingResult:
    """Terminal outcome of a polling cycle."""

    name: str
    status: ProcessingStatus
    resource: dict[str, Any] = field(default_factory=dict, compare=False)
    ticks: int = 0
    elapsed: float = 0.0


@dataclass(frozen=True)
class MetadataEntry:
    """A single custom metadata value attached to a store document."""

    key: str
    value: str | float
    value_type: MetadataValueType = MetadataValueType.STRING


@dataclass(frozen=True)
class ChunkingOptions:
    """White-space chunking settings for store documents (both optional)."""

    max_tokens_per_chunk: int | None = None
    max_overlap_tokens: int | None = None


@dataclass
class Source:
    """A single grounding citation backing a generated answer."""

    document_title: str
    store_or_uri: str
    excerpt_text: str
    uri: str | None = None
    confidence: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "document": self.document_title,
            "store": self.store_or_uri,
            "chunk": self.excerpt_text,
            "uri": self.uri,
            "confidence": self.confidence,
        }


@dataclass
class GroundedAnswer:
    """Answer text reconciled with the sources that grounded it."""

    answer_text: str
    sources: list[Source] = field(default_factory=list)
    grounding_metadata: dict[str, Any] | None = None
    raw_response: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON payload handed to the surrounding shell."""
        return {
            "answer": self.answer_text,
            "sources": [s.to_dict() for s in self.sources],
            "groundingMetadata": self.grounding_metadata,
            "rawResponse": self.raw_response,
        }
