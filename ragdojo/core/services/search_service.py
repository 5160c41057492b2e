"""Search service - staged retrieval pipeline.

A request is a ``RetrievalState`` passed through an ordered list of
stages chosen from the ``SearchEnhancements`` flags:

    [rewrite] → embed → prune → fuse → [rerank]

Each stage returns a new state; rewrite and rerank absorb their own
failures, embed raises ``UpstreamUnavailableError``.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Awaitable, Callable, Optional

from ..errors import UpstreamUnavailableError
from ..models.chat import PipelineStage
from ..models.document import Candidate, CorpusItem, RankedResult
from ..models.search import SearchEnhancements, SearchResultSet
from ..protocols.embedder import EmbedderProtocol
from ..protocols.reranker import RerankerProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..state import ChunkIndex
from ..strategies.pruning import (
    ApproximatePruner,
    CandidateSource,
    ExhaustivePruner,
    Pruner,
)
from ..strategies.scoring import rank_candidates, select_fusion
from .query_rewriter import QueryRewriter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetrievalState:
    """Intermediate result of one retrieval request."""
    query: str
    source: CandidateSource = field(compare=False, repr=False)
    enhancements: SearchEnhancements = field(default_factory=SearchEnhancements)
    top_k: int = 5
    min_score: float = 0.0
    search_query: str = ""
    embedding_input: str = ""
    expanded_query: Optional[str] = None
    hypothetical_document: Optional[str] = None
    query_vector: Optional[list[float]] = None
    candidates: list[Candidate] = field(default_factory=list)
    candidates_considered: int = 0
    stages: tuple[PipelineStage, ...] = ()
    timings_ms: dict[str, int] = field(default_factory=dict)

    @property
    def results(self) -> list[RankedResult]:
        return [c.to_result() for c in self.candidates]

    def to_result_set(self, elapsed_ms: int) -> SearchResultSet:
        return SearchResultSet(
            results=self.results,
            elapsed_ms=elapsed_ms,
            expanded_query=self.expanded_query,
            hypothetical_document=self.hypothetical_document,
        )


Stage = Callable[[RetrievalState], Awaitable[RetrievalState]]


class SearchService:
    """Retrieval pipeline over any candidate source."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        rewriter: QueryRewriter,
        reranker: RerankerProtocol,
        vector_weight: float = 0.7,
        keyword_weight: float = 0.3,
        content_weight: float = 0.75,
        tag_weight: float = 0.25,
    ):
        """Initialize search service.

        Args:
            embedder: Embedding gateway.
            rewriter: Query expansion / HyDE.
            reranker: Second-pass reranker.
            vector_weight: Hybrid weight of the vector score.
            keyword_weight: Hybrid weight of the lexical score.
            content_weight: Multi-vector weight of the content vector.
            tag_weight: Multi-vector weight of the tag vector.
        """
        self._embedder = embedder
        self._rewriter = rewriter
        self._reranker = reranker
        self._weights = dict(
            vector_weight=vector_weight,
            keyword_weight=keyword_weight,
            content_weight=content_weight,
            tag_weight=tag_weight,
        )

    def plan(self, enhancements: SearchEnhancements) -> list[tuple[PipelineStage, Stage]]:
        """Ordered stages for a pipeline configuration."""
        stages: list[tuple[PipelineStage, Stage]] = []
        if enhancements.use_query_expansion or enhancements.use_hyde:
            stages.append((PipelineStage.QUERY_REWRITE, self.rewrite))
        stages.extend(
            [
                (PipelineStage.EMBED, self.embed),
                (PipelineStage.PRUNE, self.prune),
                (PipelineStage.FUSE, self.fuse),
            ]
        )
        if enhancements.use_reranking:
            stages.append((PipelineStage.RERANK, self.rerank))
        return stages

    async def search(
        self,
        query: str,
        source: CandidateSource,
        enhancements: SearchEnhancements | None = None,
        top_k: int = 5,
        min_score: float = 0.0,
    ) -> RetrievalState:
        """Run the retrieval stages for one query.

        Args:
            query: Original user query.
            source: Corpus or collection to search.
            enhancements: Optional stage switches.
            top_k: Number of results.
            min_score: Score threshold.

        Returns:
            Final state with ranked candidates and stage timings.

        Raises:
            UpstreamUnavailableError: Embedding or storage failed.
        """
        enhancements = enhancements or SearchEnhancements()
        state = RetrievalState(
            query=query,
            source=source,
            enhancements=enhancements,
            top_k=top_k,
            min_score=min_score,
            search_query=query,
            embedding_input=query,
        )

        for name, stage in self.plan(enhancements):
            started = time.perf_counter()
            state = await stage(state)
            elapsed = int((time.perf_counter() - started) * 1000)
            state = replace(
                state,
                stages=state.stages + (name,),
                timings_ms={**state.timings_ms, name.value: elapsed},
            )

        logger.info(
            f"Search: returned {len(state.candidates)}/{top_k} results "
            f"from {state.candidates_considered} candidates for '{query[:50]}'"
        )
        return state

    async def rewrite(self, state: RetrievalState) -> RetrievalState:
        search_query = state.query
        expanded = None
        if state.enhancements.use_query_expansion:
            search_query = await self._rewriter.expand(state.query)
            expanded = search_query

        embedding_input = search_query
        hypothetical = None
        if state.enhancements.use_hyde:
            embedding_input = await self._rewriter.hypothetical_document(search_query)
            hypothetical = embedding_input

        return replace(
            state,
            search_query=search_query,
            embedding_input=embedding_input,
            expanded_query=expanded,
            hypothetical_document=hypothetical,
        )

    async def embed(self, state: RetrievalState) -> RetrievalState:
        try:
            vector = await self._embedder.embed(state.embedding_input)
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            raise UpstreamUnavailableError("embedding", str(e)) from e
        return replace(state, query_vector=vector)

    def _pruner(self, enhancements: SearchEnhancements) -> Pruner:
        if enhancements.use_hnsw_approximate:
            return ApproximatePruner(enhancements.hnsw_ef_search)
        return ExhaustivePruner(enhancements.candidate_pool_size)

    async def prune(self, state: RetrievalState) -> RetrievalState:
        pruner = self._pruner(state.enhancements)
        candidates = await pruner.select(
            state.search_query, state.query_vector or [], state.source, state.top_k
        )
        return replace(state, candidates=candidates, candidates_considered=len(candidates))

    async def fuse(self, state: RetrievalState) -> RetrievalState:
        fusion = select_fusion(state.enhancements, **self._weights)
        fused = fusion.apply(state.search_query, state.candidates)
        ranked = rank_candidates(
            fused,
            top_k=state.top_k,
            min_score=state.min_score,
            post_filter=state.enhancements.post_filter,
        )
        return replace(state, candidates=ranked)

    async def rerank(self, state: RetrievalState) -> RetrievalState:
        reranked = await self._reranker.rerank(state.query, state.candidates, state.top_k)
        return replace(state, candidates=reranked)


class CollectionSource(CandidateSource):
    """Chunks of one vector store collection.

    ``nearest`` asks the vector store; ``items`` reads the chunk index for
    approximate pruning.
    """

    def __init__(
        self,
        vector_store: VectorStoreProtocol,
        collection: str,
        chunk_index: ChunkIndex,
    ):
        self._vector_store = vector_store
        self._collection = collection
        self._chunk_index = chunk_index

    async def nearest(self, query_vector: list[float], k: int) -> list[Candidate]:
        try:
            hits = await self._vector_store.search(self._collection, query_vector, k)
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            raise UpstreamUnavailableError("vector store", str(e)) from e

        return [
            Candidate(
                id=chunk.id,
                text=chunk.content,
                source_label=chunk.source_file_name,
                chunk_index=chunk.chunk_index,
                vector_score=score,
                combined_score=score,
            )
            for chunk, score in hits
        ]

    async def items(self) -> list[CorpusItem]:
        items = self._chunk_index.items(self._collection)
        if items:
            return items

        try:
            stored = await self._vector_store.count(self._collection)
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            raise UpstreamUnavailableError("vector store", str(e)) from e
        if stored:
            logger.warning(
                f"Chunk index for {self._collection} is empty but the vector store holds "
                f"{stored} chunks; approximate search has no candidates until documents are re-ingested"
            )
        return items
