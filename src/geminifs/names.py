"""Resource name normalization.

Callers may pass bare IDs (``abc123``) where the API expects namespaced
resource names (``files/abc123``).  Operation names are always used
verbatim since their prefix depends on which call produced them.
"""

from __future__ import annotations

FILES_PREFIX = "files/"
STORES_PREFIX = "fileSearchStores/"


def _with_prefix(name: str, prefix: str) -> str:
    name = name.strip()
    if not name:
        raise ValueError("Resource name must not be empty")
    return name if name.startswith(prefix) else f"{prefix}{name}"


def normalize_file_name(name: str) -> str:
    """``abc`` -> ``files/abc``."""
    return _with_prefix(name, FILES_PREFIX)


def normalize_store_name(name: str) -> str:
    """``s1`` -> ``fileSearchStores/s1``."""
    return _with_prefix(name, STORES_PREFIX)


def normalize_document_name(name: str) -> str:
    """``s1/documents/d1`` -> ``fileSearchStores/s1/documents/d1``."""
    return _with_prefix(name, STORES_PREFIX)
