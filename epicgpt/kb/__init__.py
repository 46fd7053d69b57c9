"""
Knowledge Base.

Per-guild OpenAI vector stores: file and URL ingestion and file_search retrieval.
"""

from epicgpt.kb.fetch import FetchedPage, FetchError
from epicgpt.kb.ingest import IngestResult, KnowledgeIngestor, RefreshResult
from epicgpt.kb.search import KnowledgeBaseResult, KnowledgeBaseRetriever
from epicgpt.kb.vector_store import UploadedFile, VectorStoreManager

__all__ = [
    "FetchError",
    "FetchedPage",
    "IngestResult",
    "KnowledgeBaseResult",
    "KnowledgeBaseRetriever",
    "KnowledgeIngestor",
    "RefreshResult",
    "UploadedFile",
    "VectorStoreManager",
]
