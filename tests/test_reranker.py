"""Tests for the LLM reranker."""

from ragdojo.core.models.document import Candidate
from ragdojo.core.services.reranker import LLMReranker, build_rerank_prompt, parse_scores

from conftest import StubLLM


def _candidates(*scores: float) -> list[Candidate]:
    return [
        Candidate(id=f"c{i}", text=f"text {i}", source_label="test",
                  vector_score=s, combined_score=s)
        for i, s in enumerate(scores, start=1)
    ]


class TestParseScores:

    def test_valid_lines(self):
        assert parse_scores("c1|0.9\nc2 | 0.1") == {"c1": 0.9, "c2": 0.1}

    def test_skips_malformed_lines(self):
        text = "Here are the scores:\nc1|high\nc2|0.4\n|0.5\nc3 0.7"
        assert parse_scores(text) == {"c2": 0.4}

    def test_clamps_out_of_range(self):
        assert parse_scores("a|1.7\nb|-0.2") == {"a": 1.0, "b": 0.0}

    def test_ids_case_insensitive(self):
        assert parse_scores("- ABC|0.5") == {"abc": 0.5}

    def test_rejects_nan(self):
        assert parse_scores("a|nan\nb|inf") == {}


class TestLLMReranker:

    async def test_reorders_by_llm_scores(self):
        llm = StubLLM(["c1|0.1\nc2|0.3\nc3|0.95"])
        reranked = await LLMReranker(llm).rerank("query", _candidates(0.9, 0.8, 0.7), top_k=3)

        assert [c.id for c in reranked] == ["c3", "c2", "c1"]
        assert reranked[0].combined_score == 0.95

    async def test_partial_response_keeps_unscored_candidates(self):
        llm = StubLLM(["c1|0.2\nC4|0.99\ngarbage line\nc5|0.6\nnot|a|score"])
        reranked = await LLMReranker(llm).rerank(
            "query", _candidates(0.9, 0.8, 0.7, 0.6, 0.5), top_k=5
        )

        assert len(reranked) == 5
        assert [c.id for c in reranked] == ["c4", "c2", "c3", "c5", "c1"]
        unscored = {c.id: c.combined_score for c in reranked}
        assert unscored["c2"] == 0.8
        assert unscored["c3"] == 0.7

    async def test_truncates_to_top_k(self):
        llm = StubLLM(["c1|0.5\nc2|0.6\nc3|0.7"])
        reranked = await LLMReranker(llm).rerank("query", _candidates(0.9, 0.8, 0.7), top_k=2)

        assert [c.id for c in reranked] == ["c3", "c2"]

    async def test_provider_failure_keeps_order(self):
        llm = StubLLM([RuntimeError("boom")])
        candidates = _candidates(0.9, 0.8, 0.7)
        reranked = await LLMReranker(llm).rerank("query", candidates, top_k=2)

        assert reranked == candidates[:2]

    async def test_unparseable_response_keeps_order(self):
        llm = StubLLM(["I think the first one is best."])
        candidates = _candidates(0.9, 0.8)
        reranked = await LLMReranker(llm).rerank("query", candidates, top_k=5)

        assert reranked == candidates

    async def test_empty_input_skips_llm(self):
        llm = StubLLM()
        assert await LLMReranker(llm).rerank("query", [], top_k=3) == []
        assert llm.requests == []

    def test_prompt_lists_every_candidate(self):
        prompt = build_rerank_prompt("crema?", _candidates(0.5, 0.4))

        assert "Query: crema?" in prompt
        assert "- c1: text 1" in prompt
        assert "- c2: text 2" in prompt
