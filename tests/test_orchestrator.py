"""Tests for the chat orchestrator."""

import asyncio

import pytest

from ragdojo.core.errors import InvalidInputError, UpstreamUnavailableError
from ragdojo.core.models.chat import ChatRequest, PipelineStage, RetrievedChunk
from ragdojo.core.models.search import SearchEnhancements
from ragdojo.core.services.orchestrator import NO_RESPONSE, RagOrchestrator, build_context

from conftest import BlockingLLM

DOCUMENT = (
    "Espresso is brewed by forcing hot water through finely ground coffee. "
    "A good espresso has a thick layer of crema.\n\n"
    "Cappuccino combines espresso with steamed milk and milk foam. "
    "The milk is steamed with the steam wand until it is silky."
)


@pytest.fixture
def orchestrator(search_service, llm, embedder, vector_store, state, token_counter):
    return RagOrchestrator(
        search_service=search_service,
        llm=llm,
        embedder=embedder,
        vector_store=vector_store,
        state=state,
        token_counter=token_counter,
        top_k=3,
        min_score=0.1,
        max_context_tokens=1000,
    )


@pytest.fixture
async def indexed(ingest_service):
    return await ingest_service.ingest("coffee.txt", DOCUMENT)


class TestChat:

    async def test_answers_with_retrieved_context(self, orchestrator, indexed, llm):
        llm.replies.append("Espresso has crema.")

        response = await orchestrator.chat(ChatRequest(message="what is crema on espresso"))

        assert response.answer == "Espresso has crema."
        assert response.retrieved_chunks
        assert response.retrieved_chunks[0].source_file_name == "coffee.txt"
        system_prompt = llm.requests[-1][0].content
        assert "[Source: coffee.txt, Chunk " in system_prompt
        assert llm.requests[-1][-1].content == "what is crema on espresso"

    async def test_no_debug_info_by_default(self, orchestrator, indexed):
        response = await orchestrator.chat(ChatRequest(message="espresso"))

        assert response.token_usage is None
        assert response.metrics is None

    async def test_debug_info_has_usage_and_stage_path(self, orchestrator, indexed, llm):
        llm.replies.append("ok")

        response = await orchestrator.chat(ChatRequest(message="espresso crema", include_debug_info=True))

        usage = response.token_usage
        assert usage.query_tokens == 2
        assert usage.total_input_tokens == usage.system_prompt_tokens + usage.context_tokens + usage.query_tokens
        assert usage.usage_percentage == round(usage.total_input_tokens / 1000 * 100, 2)
        assert response.metrics.stages == [
            PipelineStage.START,
            PipelineStage.EMBED,
            PipelineStage.PRUNE,
            PipelineStage.FUSE,
            PipelineStage.CONTEXT_ASSEMBLY,
            PipelineStage.GENERATE,
            PipelineStage.DONE,
        ]
        assert response.metrics.chunks_retrieved == len(response.retrieved_chunks)
        assert response.metrics.chat_model == "stub-llm"

    async def test_enhanced_stage_path(self, orchestrator, indexed, llm):
        llm.replies.extend(["espresso crema foam", "Espresso has crema.", "garbage", "answer"])
        enhancements = SearchEnhancements(
            use_query_expansion=True, use_hyde=True, use_reranking=True, use_hybrid_search=True
        )

        response = await orchestrator.chat(
            ChatRequest(message="espresso", include_debug_info=True, enhancements=enhancements)
        )

        assert response.answer == "answer"
        assert response.expanded_query == "espresso crema foam"
        assert response.hypothetical_document == "Espresso has crema."
        assert PipelineStage.QUERY_REWRITE in response.metrics.stages
        assert PipelineStage.RERANK in response.metrics.stages

    async def test_empty_answer_replaced(self, orchestrator, indexed, llm):
        llm.replies.append("   ")

        response = await orchestrator.chat(ChatRequest(message="espresso"))

        assert response.answer == NO_RESPONSE

    async def test_no_documents_still_answers(self, orchestrator, llm):
        llm.replies.append("I don't have enough information.")

        response = await orchestrator.chat(ChatRequest(message="espresso"))

        assert response.retrieved_chunks == []
        assert response.answer == "I don't have enough information."

    async def test_generation_failure_raises(self, orchestrator, indexed, llm):
        llm.replies.append(ConnectionError("model offline"))

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            await orchestrator.chat(ChatRequest(message="espresso"))

        assert exc_info.value.gateway == "generation"

    async def test_embedding_failure_raises(self, orchestrator, indexed, embedder, llm):
        embedder.error = ConnectionError("embedder offline")

        with pytest.raises(UpstreamUnavailableError):
            await orchestrator.chat(ChatRequest(message="espresso"))

        assert llm.requests == []

    async def test_token_counter_failure_omits_usage(self, orchestrator, indexed, llm, token_counter, monkeypatch):
        def broken(text):
            raise ConnectionError("encoding download failed")

        monkeypatch.setattr(token_counter, "count", broken)
        llm.replies.append("Espresso has crema.")

        response = await orchestrator.chat(ChatRequest(message="espresso crema", include_debug_info=True))

        assert response.answer == "Espresso has crema."
        assert response.token_usage is None
        assert response.metrics.stages[-1] == PipelineStage.DONE

    async def test_zero_top_k_rejected(self, orchestrator, llm):
        with pytest.raises(InvalidInputError):
            await orchestrator.chat(ChatRequest(message="espresso", top_k=0))

        assert llm.requests == []

    async def test_cancel_during_generation_propagates(
        self, search_service, embedder, vector_store, state, token_counter, indexed
    ):
        llm = BlockingLLM()
        orchestrator = RagOrchestrator(
            search_service=search_service,
            llm=llm,
            embedder=embedder,
            vector_store=vector_store,
            state=state,
            token_counter=token_counter,
            min_score=0.1,
        )
        task = asyncio.create_task(orchestrator.chat(ChatRequest(message="espresso crema")))

        await asyncio.wait_for(llm.started.wait(), timeout=1)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert task.cancelled()

    @pytest.mark.parametrize("message", ["", "   "])
    async def test_empty_message_rejected(self, orchestrator, message):
        with pytest.raises(InvalidInputError):
            await orchestrator.chat(ChatRequest(message=message))

    async def test_approx_pool_smaller_than_top_k_rejected(self, orchestrator):
        enhancements = SearchEnhancements(use_hnsw_approximate=True, candidate_pool_size=2)

        with pytest.raises(InvalidInputError):
            await orchestrator.chat(ChatRequest(message="espresso", enhancements=enhancements, top_k=5))


def test_build_context_labels_sources():
    chunks = [
        RetrievedChunk(id="1", content="First.", source_file_name="a.txt", chunk_index=0, relevance_score=0.9),
        RetrievedChunk(id="2", content="Second.", source_file_name="b.txt", chunk_index=3, relevance_score=0.8),
    ]

    context = build_context(chunks)

    assert context == "[Source: a.txt, Chunk 0]\nFirst.\n\n[Source: b.txt, Chunk 3]\nSecond.\n"
