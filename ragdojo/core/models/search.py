"""Search request/response models."""
from dataclasses import dataclass, field
from typing import Optional

from ..errors import InvalidInputError
from .document import RankedResult


@dataclass(frozen=True)
class SearchEnhancements:
    """Pipeline configuration: which optional stages run and how wide to search."""
    use_hybrid_search: bool = False
    use_query_expansion: bool = False
    use_reranking: bool = False
    use_hyde: bool = False
    use_multi_vector_search: bool = False
    use_contextual_embeddings: bool = False
    use_hnsw_approximate: bool = False
    hnsw_ef_search: int = 32
    candidate_pool_size: int = 20
    # Re-apply min_score to the fused score, not only to the raw vector score.
    post_filter: bool = True

    @property
    def any_enabled(self) -> bool:
        return any(
            (
                self.use_hybrid_search,
                self.use_query_expansion,
                self.use_reranking,
                self.use_hyde,
                self.use_multi_vector_search,
                self.use_contextual_embeddings,
                self.use_hnsw_approximate,
            )
        )

    def validate(self, top_k: int) -> None:
        """Reject configurations that cannot satisfy the requested top_k."""
        if self.candidate_pool_size < 1:
            raise InvalidInputError("candidate_pool_size must be positive")
        if self.use_hnsw_approximate and self.candidate_pool_size < top_k:
            raise InvalidInputError(
                f"candidate_pool_size ({self.candidate_pool_size}) must be >= "
                f"top_k ({top_k}) when approximate pruning is enabled"
            )


@dataclass(frozen=True)
class SearchRequest:
    query: str
    enhancements: Optional[SearchEnhancements] = None
    top_k: int = 5
    min_score: float = 0.5

    def validate(self) -> None:
        if not self.query or not self.query.strip():
            raise InvalidInputError("Query cannot be empty")
        if self.top_k < 1:
            raise InvalidInputError("top_k must be at least 1")
        if not 0.0 <= self.min_score <= 1.0:
            raise InvalidInputError("min_score must be within [0, 1]")
        if self.enhancements is not None:
            self.enhancements.validate(self.top_k)


@dataclass
class SearchResultSet:
    results: list[RankedResult]
    elapsed_ms: int
    expanded_query: Optional[str] = None
    hypothetical_document: Optional[str] = None


@dataclass
class SearchResponse:
    standard_results: SearchResultSet
    enhanced_results: Optional[SearchResultSet]
    original_query: str
    applied_enhancements: SearchEnhancements


@dataclass(frozen=True)
class DemoSentence:
    id: str
    text: str
    category: str
    tags: tuple[str, ...] = ()

    @property
    def tag_text(self) -> str:
        """Text embedded as the tag vector; falls back to the sentence itself."""
        joined = " ".join(self.tags).strip()
        return joined or self.text

    @property
    def contextual_text(self) -> str:
        return f"{self.category} | {' '.join(self.tags)} | {self.text}"


@dataclass(frozen=True)
class DemoScenario:
    name: str
    query: str
    expected_match: str
    explanation: str


@dataclass
class DemoCorpus:
    description: str
    sentences: list[DemoSentence] = field(default_factory=list)
    scenarios: list[DemoScenario] = field(default_factory=list)


@dataclass
class DemoStatus:
    is_initialized: bool
    embedded_sentence_count: int
    embedding_model: Optional[str]
