"""Upload metadata builders for the Files API and File Search stores.

Store uploads take snake_case config in the multipart metadata part::

    {
        "display_name": "report.pdf",
        "custom_metadata": {"year": {"numeric_value": 2024.0},
                            "team": {"string_value": "infra"}},
        "chunking_config": {"white_space_config": {"max_tokens_per_chunk": 200,
                                                   "max_overlap_tokens": 20}}
    }

``importFile`` takes the same chunking block but custom metadata as a list of
``{"key", "stringValue"|"numericValue"}`` objects.

Empty sections are omitted rather than sent as empty objects.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from geminifs.models import (
    MAX_DISPLAY_NAME_LENGTH,
    ChunkingOptions,
    MetadataEntry,
    MetadataValueType,
)


def build_file_metadata(display_name: str) -> dict[str, Any]:
    """Metadata part for a Files API upload (display name capped at 512 chars)."""
    return {"file": {"display_name": display_name[:MAX_DISPLAY_NAME_LENGTH]}}


def parse_metadata_entries(raw_entries: Iterable[Mapping[str, Any]]) -> list[MetadataEntry]:
    """Turn ``{"key", "valueType", "value"}`` mappings into :class:`MetadataEntry` objects.

    Entries without a key are dropped.  ``valueType == "numeric"`` values are
    parsed as floats.

    Raises:
        ValueError: If a numeric entry's value is not a number.
    """
    entries: list[MetadataEntry] = []
    for raw in raw_entries:
        key = raw.get("key")
        if not key:
            continue
        value = raw.get("value", "")
        if raw.get("valueType") == MetadataValueType.NUMERIC.value:
            try:
                number = float(value)
            except (TypeError, ValueError):
                raise ValueError(
                    f"Metadata entry {key!r} is numeric but has value {value!r}"
                ) from None
            entries.append(MetadataEntry(key, number, MetadataValueType.NUMERIC))
        else:
            entries.append(MetadataEntry(key, str(value), MetadataValueType.STRING))
    return entries


def build_custom_metadata(entries: Iterable[MetadataEntry]) -> dict[str, dict[str, Any]]:
    result: dict[str, dict[str, Any]] = {}
    for entry in entries:
        if not entry.key:
            continue
        if entry.value_type is MetadataValueType.NUMERIC:
            result[entry.key] = {"numeric_value": float(entry.value)}
        else:
            result[entry.key] = {"string_value": str(entry.value)}
    return result


def build_custom_metadata_list(entries: Iterable[MetadataEntry]) -> list[dict[str, Any]]:
    """List form taken by ``importFile``: ``[{"key", "stringValue"|"numericValue"}]``."""
    result: list[dict[str, Any]] = []
    for entry in entries:
        if not entry.key:
            continue
        if entry.value_type is MetadataValueType.NUMERIC:
            result.append({"key": entry.key, "numericValue": float(entry.value)})
        else:
            result.append({"key": entry.key, "stringValue": str(entry.value)})
    return result


def build_chunking_config(options: ChunkingOptions | None) -> dict[str, Any] | None:
    """``white_space_config`` block, or ``None`` when no option is set."""
    if options is None:
        return None
    white_space_config: dict[str, int] = {}
    if options.max_tokens_per_chunk:
        white_space_config["max_tokens_per_chunk"] = options.max_tokens_per_chunk
    if options.max_overlap_tokens:
        white_space_config["max_overlap_tokens"] = options.max_overlap_tokens
    if not white_space_config:
        return None
    return {"white_space_config": white_space_config}


def build_store_upload_config(
    display_name: str,
    entries: Iterable[MetadataEntry] = (),
    chunking: ChunkingOptions | None = None,
) -> dict[str, Any]:
    """Metadata part for an ``uploadToFileSearchStore`` call."""
    config: dict[str, Any] = {"display_name": display_name[:MAX_DISPLAY_NAME_LENGTH]}
    custom_metadata = build_custom_metadata(entries)
    if custom_metadata:
        config["custom_metadata"] = custom_metadata
    chunking_config = build_chunking_config(chunking)
    if chunking_config:
        config["chunking_config"] = chunking_config
    return config


def build_import_file_request(
    file_name: str,
    entries: Iterable[MetadataEntry] = (),
    chunking: ChunkingOptions | None = None,
) -> dict[str, Any]:
    """Body for ``{store}:importFile``.  *file_name* must already carry ``files/``."""
    body: dict[str, Any] = {"file_name": file_name}
    custom_metadata = build_custom_metadata_list(entries)
    if custom_metadata:
        body["custom_metadata"] = custom_metadata
    chunking_config = build_chunking_config(chunking)
    if chunking_config:
        body["chunking_config"] = chunking_config
    return body
