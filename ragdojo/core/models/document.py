"""Document domain models."""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SourceDocument:
    """Uploaded document kept for re-ingestion."""
    file_name: str
    content: str
    id: str = field(default_factory=_new_id)
    uploaded_at: datetime = field(default_factory=_utcnow)


@dataclass
class Chunk:
    """Document chunk for indexing."""
    content: str
    source_document_id: str
    source_file_name: str
    chunk_index: int
    start_offset: int
    end_offset: int
    id: str = field(default_factory=_new_id)
    embedding: Optional[list[float]] = None


@dataclass(frozen=True)
class CorpusItem:
    """Anything the pruner can select: a stored chunk or a demo sentence."""
    id: str
    text: str
    source_label: str
    tags: tuple[str, ...] = ()
    embedding: Optional[list[float]] = None
    tag_embedding: Optional[list[float]] = None
    chunk_index: int = 0


@dataclass
class Candidate:
    """Per-request scoring record."""
    id: str
    text: str
    source_label: str
    tags: tuple[str, ...] = ()
    chunk_index: int = 0
    vector_score: float = 0.0
    tag_vector_score: Optional[float] = None
    lexical_score: float = 0.0
    matched_terms: list[str] = field(default_factory=list)
    combined_score: float = 0.0

    @classmethod
    def from_item(
        cls,
        item: CorpusItem,
        vector_score: float,
        tag_vector_score: Optional[float] = None,
    ) -> "Candidate":
        return cls(
            id=item.id,
            text=item.text,
            source_label=item.source_label,
            tags=item.tags,
            chunk_index=item.chunk_index,
            vector_score=vector_score,
            tag_vector_score=tag_vector_score,
            combined_score=vector_score,
        )

    def to_result(self) -> "RankedResult":
        return RankedResult(
            id=self.id,
            text=self.text,
            source_label=self.source_label,
            score=round(self.combined_score, 4),
            matched_terms=list(self.matched_terms),
            chunk_index=self.chunk_index,
        )


@dataclass(frozen=True)
class RankedResult:
    """Presentation record; score is rounded to 4 decimals."""
    id: str
    text: str
    source_label: str
    score: float
    matched_terms: list[str] = field(default_factory=list)
    chunk_index: int = 0


@dataclass
class IngestResult:
    document_id: str
    file_name: str
    chunks_created: int
    collection_name: str
    processing_time_ms: int


@dataclass
class CollectionInfo:
    name: str
    embedding_model: str
    dimensions: int
    document_count: int
    is_active: bool


@dataclass
class EmbeddingPoint:
    """2D projection of a stored chunk (or the query) for plotting."""
    id: str
    text_preview: str
    source_file: str
    x: float
    y: float
    is_query: bool = False
    relevance_score: Optional[float] = None


@dataclass
class EmbeddingVisualization:
    points: list[EmbeddingPoint]
    collection_name: str
    embedding_model: str
    original_dimensions: int
