"""Search subpackage for grounded queries over File Search stores."""

from geminifs.search.citations import aggregate_confidence, extract_sources
from geminifs.search.query import (
    GroundedQueryExecutor,
    build_query_request,
    extract_answer_text,
    parse_grounded_response,
)

__all__ = [
    "GroundedQueryExecutor",
    "aggregate_confidence",
    "build_query_request",
    "extract_answer_text",
    "extract_sources",
    "parse_grounded_response",
]
