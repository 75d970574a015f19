"""Title indexing and search package."""

from .discovery import discover_documents, read_document_text
from .inverted import InvertedIndex, TitleIndex
from .manager import (
    INDEX_SCHEMA_VERSION,
    IndexManager,
    IndexSchemaUnsupportedError,
    IndexStatus,
    IndexStorageError,
)
from .models import CandidateDocument, DocumentRecord, RunSummary, SearchHit
from .pipeline import full_build, incremental_update, is_stale
from .query import evaluate_query
from .text import extract_title, normalize_links, title_tokens, tokenize

__all__ = [
    "CandidateDocument",
    "DocumentRecord",
    "INDEX_SCHEMA_VERSION",
    "IndexManager",
    "IndexSchemaUnsupportedError",
    "IndexStatus",
    "IndexStorageError",
    "InvertedIndex",
    "RunSummary",
    "SearchHit",
    "TitleIndex",
    "discover_documents",
    "evaluate_query",
    "extract_title",
    "full_build",
    "incremental_update",
    "is_stale",
    "normalize_links",
    "read_document_text",
    "title_tokens",
    "tokenize",
]
