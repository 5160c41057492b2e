"""Core business services."""
from .chunker import DocumentChunker
from .query_rewriter import QueryRewriter
from .reranker import LLMReranker
from .search_service import SearchService, CollectionSource, RetrievalState
from .ingest_service import IngestService
from .orchestrator import RagOrchestrator
from .demo_search_service import DemoSearchService
from .visualization_service import VisualizationService

__all__ = [
    "DocumentChunker",
    "QueryRewriter",
    "LLMReranker",
    "SearchService",
    "CollectionSource",
    "RetrievalState",
    "IngestService",
    "RagOrchestrator",
    "DemoSearchService",
    "VisualizationService",
]
