"""RAG orchestrator - retrieval, context assembly and answer generation."""

import logging
import time
from typing import Optional

from ..errors import UpstreamUnavailableError
from ..models.chat import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    PipelineMetrics,
    PipelineStage,
    RetrievedChunk,
    TokenUsage,
)
from ..models.search import SearchEnhancements
from ..protocols.embedder import EmbedderProtocol
from ..protocols.llm import LLMProtocol
from ..protocols.tokenizer import TokenCounterProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..state import RagState
from .search_service import CollectionSource, SearchService

logger = logging.getLogger(__name__)

NO_RESPONSE = "No response generated"

SYSTEM_PROMPT_TEMPLATE = """You are a helpful assistant that answers questions based on the provided context.

INSTRUCTIONS:
- Answer the user's question using ONLY the information from the context below.
- If the context doesn't contain enough information to answer the question, say "I don't have enough information to answer that question based on the available documents."
- Be concise and accurate.
- When relevant, mention which source document the information came from.

CONTEXT:
{context}"""


def build_context(chunks: list[RetrievedChunk]) -> str:
    """Concatenate chunks in ranked order, each labelled with its source."""
    parts = []
    for chunk in chunks:
        parts.append(
            f"[Source: {chunk.source_file_name}, Chunk {chunk.chunk_index}]\n"
            f"{chunk.content}\n"
        )
    return "\n".join(parts)


class RagOrchestrator:
    """Sequences one chat request through the retrieval and generation stages.

    Start → [QueryRewrite] → Embed → Prune → Fuse → [Rerank] →
    ContextAssembly → Generate → Done. Rewrite and rerank failures are
    absorbed in their stage; embedding, storage and generation failures
    end in Error and are raised to the caller.
    """

    def __init__(
        self,
        search_service: SearchService,
        llm: LLMProtocol,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        state: RagState,
        token_counter: TokenCounterProtocol,
        top_k: int = 5,
        min_score: float = 0.5,
        candidate_pool_size: int = 20,
        ef_search: int = 32,
        max_context_tokens: int = 128000,
    ):
        """Initialize orchestrator.

        Args:
            search_service: Retrieval pipeline.
            llm: Generation gateway.
            embedder: Embedding gateway (selects the active collection).
            vector_store: Vector store.
            state: Shared tables.
            token_counter: Token counting for debug usage.
            top_k: Default number of chunks.
            min_score: Minimum relevance of a retrieved chunk.
            candidate_pool_size: Default candidate breadth.
            ef_search: Default approximate-search breadth.
            max_context_tokens: Context window used for usage percentage.
        """
        self._search = search_service
        self._llm = llm
        self._embedder = embedder
        self._vector_store = vector_store
        self._state = state
        self._token_counter = token_counter
        self._top_k = top_k
        self._min_score = min_score
        self._candidate_pool_size = candidate_pool_size
        self._ef_search = ef_search
        self._max_context_tokens = max_context_tokens

    def _default_enhancements(self) -> SearchEnhancements:
        return SearchEnhancements(
            candidate_pool_size=self._candidate_pool_size,
            hnsw_ef_search=self._ef_search,
        )

    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Answer a question from the indexed documents.

        Args:
            request: Chat request.

        Returns:
            Answer with retrieved chunks, plus token usage and metrics
            when debug info is requested.

        Raises:
            InvalidInputError: Empty message or inconsistent enhancements.
            UpstreamUnavailableError: Embedding, storage or generation failed.
        """
        request.validate(self._top_k)
        total_started = time.perf_counter()
        stages = [PipelineStage.START]
        top_k = self._top_k if request.top_k is None else request.top_k
        enhancements = request.enhancements or self._default_enhancements()

        logger.info(f"Processing chat request: {request.message[:80]}")

        collection = await self._state.collections.get_or_create(
            self._embedder.model_name, self._embedder.dimensions, self._vector_store
        )
        source = CollectionSource(self._vector_store, collection, self._state.chunks)

        search_started = time.perf_counter()
        try:
            retrieval = await self._search.search(
                request.message,
                source,
                enhancements=enhancements,
                top_k=top_k,
                min_score=self._min_score,
            )
        except UpstreamUnavailableError as e:
            stages.append(PipelineStage.ERROR)
            logger.error(f"Retrieval failed: {e} (stages: {[s.value for s in stages]})")
            raise
        search_ms = int((time.perf_counter() - search_started) * 1000)
        stages.extend(retrieval.stages)

        retrieved = [
            RetrievedChunk(
                id=c.id,
                content=c.text,
                source_file_name=c.source_label,
                chunk_index=c.chunk_index,
                relevance_score=round(c.combined_score, 4),
            )
            for c in retrieval.candidates
        ]
        logger.info(f"Retrieved {len(retrieved)} chunks in {search_ms}ms")

        stages.append(PipelineStage.CONTEXT_ASSEMBLY)
        context = build_context(retrieved)
        system_prompt = SYSTEM_PROMPT_TEMPLATE.format(context=context)

        token_usage: Optional[TokenUsage] = None
        if request.include_debug_info:
            try:
                token_usage = self.calculate_usage(system_prompt, context, request.message)
            except Exception as e:
                logger.warning(f"Token counting failed, usage omitted: {e}")

        stages.append(PipelineStage.GENERATE)
        generation_started = time.perf_counter()
        messages = [
            ChatMessage(role="system", content=system_prompt),
            ChatMessage(role="user", content=request.message),
        ]
        try:
            answer = await self._llm.complete(messages)
        except Exception as e:
            stages.append(PipelineStage.ERROR)
            logger.error(f"Generation failed: {e}")
            if isinstance(e, UpstreamUnavailableError):
                raise
            raise UpstreamUnavailableError("generation", str(e)) from e
        generation_ms = int((time.perf_counter() - generation_started) * 1000)

        stages.append(PipelineStage.DONE)
        total_ms = int((time.perf_counter() - total_started) * 1000)
        logger.info(f"Generated response in {generation_ms}ms (total: {total_ms}ms)")

        metrics = None
        if request.include_debug_info:
            metrics = PipelineMetrics(
                embedding_time_ms=retrieval.timings_ms.get(PipelineStage.EMBED.value, 0),
                search_time_ms=search_ms,
                rerank_time_ms=retrieval.timings_ms.get(PipelineStage.RERANK.value, 0),
                generation_time_ms=generation_ms,
                total_time_ms=total_ms,
                chunks_retrieved=len(retrieved),
                candidates_considered=retrieval.candidates_considered,
                embedding_model=self._embedder.model_name,
                chat_model=self._llm.model_name,
                stages=stages,
            )

        return ChatResponse(
            answer=(answer or "").strip() or NO_RESPONSE,
            retrieved_chunks=retrieved,
            token_usage=token_usage,
            metrics=metrics,
            expanded_query=retrieval.expanded_query,
            hypothetical_document=retrieval.hypothetical_document,
        )

    def calculate_usage(self, system_prompt: str, context: str, query: str) -> TokenUsage:
        """Token usage of the prompt parts against the configured window."""
        usage = TokenUsage.from_counts(
            system=self._token_counter.count(system_prompt),
            context=self._token_counter.count(context),
            query=self._token_counter.count(query),
            max_context_tokens=self._max_context_tokens,
        )
        logger.debug(
            f"Token usage - System: {usage.system_prompt_tokens}, "
            f"Context: {usage.context_tokens}, Query: {usage.query_tokens}, "
            f"Total: {usage.total_input_tokens}/{usage.max_context_tokens} "
            f"({usage.usage_percentage}%)"
        )
        return usage
