"""Grounded queries against File Search stores.

Posts a ``generateContent`` request whose only tool is ``file_search``
restricted to the given stores, then reconciles the answer text with the
grounding chunks that back it.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from geminifs.config import DEFAULT_MODEL
from geminifs.models import GroundedAnswer
from geminifs.names import normalize_store_name
from geminifs.search.citations import extract_sources, get_field
from geminifs.transport import GeminiTransport

logger = logging.getLogger(__name__)


def build_query_request(
    store_names: Sequence[str],
    query: str,
    metadata_filter: str | None = None,
) -> dict[str, Any]:
    """Request body for a File Search grounded ``generateContent`` call.

    The metadata filter is passed through unmodified in the service's own
    filter grammar; it is never parsed here.
    """
    file_search: dict[str, Any] = {
        "file_search_store_names": [normalize_store_name(name) for name in store_names],
    }
    if metadata_filter:
        file_search["metadata_filter"] = metadata_filter
    return {
        "contents": [{"parts": [{"text": query}]}],
        "tools": [{"file_search": file_search}],
    }


def extract_answer_text(candidate: dict[str, Any] | None) -> str:
    """Concatenate the candidate's part texts in order, no separator."""
    if not isinstance(candidate, dict):
        return ""
    content = candidate.get("content") or {}
    parts = content.get("parts") or []
    return "".join(part.get("text") or "" for part in parts if isinstance(part, dict))


def parse_grounded_response(raw: dict[str, Any]) -> GroundedAnswer:
    """Turn a ``generateContent`` response into a :class:`GroundedAnswer`.

    Only the first candidate is considered.  No candidates, or no grounding
    metadata, yields an empty but valid answer.
    """
    candidates = raw.get("candidates") or []
    first = candidates[0] if candidates else None
    grounding = get_field(first, "groundingMetadata", "grounding_metadata")
    return GroundedAnswer(
        answer_text=extract_answer_text(first),
        sources=extract_sources(grounding),
        grounding_metadata=grounding or None,
        raw_response=raw,
    )


def _model_path(model: str) -> str:
    model = model.strip()
    if not model:
        raise ValueError("model must not be empty")
    return model if model.startswith("models/") else f"models/{model}"


class GroundedQueryExecutor:
    """Runs grounded queries over one or more File Search stores.

    Usage::

        executor = GroundedQueryExecutor(transport)
        answer = await executor.query("my-store", "What is the refund policy?")
        print(answer.answer_text, [s.document_title for s in answer.sources])
    """

    def __init__(self, transport: GeminiTransport, default_model: str = DEFAULT_MODEL) -> None:
        self._transport = transport
        self.default_model = default_model

    async def query(
        self,
        store_names: str | Sequence[str],
        query_text: str,
        model: str | None = None,
        metadata_filter: str | None = None,
    ) -> GroundedAnswer:
        """Query the stores and parse the grounded answer.

        Args:
            store_names: One store name/ID or several; prefixes are optional.
            query_text: Natural language question.
            model: Gemini model (defaults to :attr:`default_model`).
            metadata_filter: Optional filter expression (e.g. ``year >= 2020``).

        Raises:
            ApiError: On HTTP or transport failure.
            ValueError: On an empty query or no stores.
        """
        if isinstance(store_names, str):
            store_names = [store_names]
        if not store_names:
            raise ValueError("At least one store name is required")
        if not query_text or not query_text.strip():
            raise ValueError("query_text must not be empty")

        body = build_query_request(store_names, query_text, metadata_filter)
        path = self._transport.api_path(f"{_model_path(model or self.default_model)}:generateContent")
        logger.debug("Querying %s with filter=%r", ", ".join(store_names), metadata_filter)

        raw = await self._transport.request_json(
            "POST",
            path,
            headers={"Content-Type": "application/json"},
            json=body,
        )
        answer = parse_grounded_response(raw)
        logger.info(
            "Query returned %d chars with %d sources", len(answer.answer_text), len(answer.sources)
        )
        return answer
