"""Source extraction from Gemini grounding metadata.

Works on the REST JSON shape of ``candidates[0].groundingMetadata``::

    {
        "groundingChunks": [
            {"retrievedContext": {"title": ..., "text": ..., "fileSearchStore": ..., "uri": ...}},
            ...
        ],
        "groundingSupports": [
            {"segment": {...}, "groundingChunkIndices": [0, 1], "confidenceScores": [0.9, 0.7]},
            ...
        ]
    }

Safely handles missing keys at every level.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

from geminifs.models import Source

UNKNOWN_TITLE = "Unknown"


def get_field(obj: Any, camel: str, snake: str) -> Any:
    """Read a REST field that may arrive camelCase or snake_case."""
    if not isinstance(obj, dict):
        return None
    value = obj.get(camel)
    return obj.get(snake) if value is None else value


def aggregate_confidence(grounding_metadata: dict[str, Any]) -> dict[int, float]:
    """Average the support confidence scores referencing each chunk index."""
    chunk_scores: dict[int, list[float]] = defaultdict(list)
    supports = get_field(grounding_metadata, "groundingSupports", "grounding_supports") or []
    for support in supports:
        indices = get_field(support, "groundingChunkIndices", "grounding_chunk_indices") or []
        scores = get_field(support, "confidenceScores", "confidence_scores") or []
        for idx, score in zip(indices, scores):
            chunk_scores[idx].append(float(score))
    return {idx: sum(scores) / len(scores) for idx, scores in chunk_scores.items() if scores}


def extract_sources(grounding_metadata: dict[str, Any] | None) -> list[Source]:
    """One :class:`Source` per grounding chunk that carries a retrieved context.

    Chunks without ``retrievedContext`` (e.g. web chunks) are skipped.  A
    missing title becomes ``"Unknown"`` instead of dropping the entry.

    Returns:
        Sources in chunk order; empty when there is no grounding metadata.
    """
    if not grounding_metadata:
        return []

    chunks = get_field(grounding_metadata, "groundingChunks", "grounding_chunks")
    if not chunks:
        return []

    confidence = aggregate_confidence(grounding_metadata)

    sources: list[Source] = []
    for i, chunk in enumerate(chunks):
        ctx = get_field(chunk, "retrievedContext", "retrieved_context")
        if not isinstance(ctx, dict):
            continue
        uri = ctx.get("uri") or None
        store = get_field(ctx, "fileSearchStore", "file_search_store")
        sources.append(
            Source(
                document_title=ctx.get("title") or UNKNOWN_TITLE,
                store_or_uri=store or uri or "",
                excerpt_text=ctx.get("text") or "",
                uri=uri,
                confidence=confidence.get(i, 0.0),
            )
        )
    return sources
