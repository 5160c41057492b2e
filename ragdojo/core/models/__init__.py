"""Domain models."""
from .document import (
    SourceDocument,
    Chunk,
    CorpusItem,
    Candidate,
    RankedResult,
    IngestResult,
    CollectionInfo,
    EmbeddingPoint,
    EmbeddingVisualization,
)
from .search import (
    SearchEnhancements,
    SearchRequest,
    SearchResultSet,
    SearchResponse,
    DemoSentence,
    DemoScenario,
    DemoCorpus,
    DemoStatus,
)
from .chat import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    PipelineMetrics,
    PipelineStage,
    RetrievedChunk,
    TokenUsage,
)

__all__ = [
    "SourceDocument",
    "Chunk",
    "CorpusItem",
    "Candidate",
    "RankedResult",
    "IngestResult",
    "CollectionInfo",
    "EmbeddingPoint",
    "EmbeddingVisualization",
    "SearchEnhancements",
    "SearchRequest",
    "SearchResultSet",
    "SearchResponse",
    "DemoSentence",
    "DemoScenario",
    "DemoCorpus",
    "DemoStatus",
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "PipelineMetrics",
    "PipelineStage",
    "RetrievedChunk",
    "TokenUsage",
]
