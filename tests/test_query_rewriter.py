"""Tests for query expansion and HyDE."""

from ragdojo.core.services.query_rewriter import QueryRewriter

from conftest import StubLLM


class TestExpand:

    async def test_appends_new_terms_after_original(self):
        llm = StubLLM(["coffee foam crema espresso milk froth"])
        expanded = await QueryRewriter(llm).expand("coffee foam")

        assert expanded == "coffee foam crema espresso milk froth"

    async def test_keeps_original_terms_when_model_drops_them(self):
        llm = StubLLM(["crema froth"])
        expanded = await QueryRewriter(llm).expand("coffee foam")

        assert expanded == "coffee foam crema froth"

    async def test_uses_first_line_and_strips_quotes(self):
        llm = StubLLM(["\n'hot drink coffee tea'\nExplanation: added synonyms"])
        expanded = await QueryRewriter(llm).expand("hot drink")

        assert expanded == "hot drink coffee tea"

    async def test_caps_word_count(self):
        llm = StubLLM([" ".join(f"w{i}" for i in range(40))])
        expanded = await QueryRewriter(llm).expand("espresso")

        assert len(expanded.split()) == 15
        assert expanded.startswith("espresso ")

    async def test_failure_returns_original(self):
        llm = StubLLM([ConnectionError("offline")])
        assert await QueryRewriter(llm).expand("coffee foam") == "coffee foam"

    async def test_empty_reply_returns_original(self):
        llm = StubLLM(["   "])
        assert await QueryRewriter(llm).expand("coffee foam") == "coffee foam"

    async def test_prompt_names_domain(self):
        llm = StubLLM(["x"])
        await QueryRewriter(llm, domain="tea ceremonies").expand("matcha")

        system = llm.requests[0][0]
        assert system.role == "system"
        assert "tea ceremonies" in system.content


class TestHypotheticalDocument:

    async def test_returns_generated_passage(self):
        llm = StubLLM(["  Sour espresso is usually under-extracted.  "])
        passage = await QueryRewriter(llm).hypothetical_document("why is my espresso sour")

        assert passage == "Sour espresso is usually under-extracted."

    async def test_failure_returns_query(self):
        llm = StubLLM([TimeoutError("slow")])
        assert await QueryRewriter(llm).hypothetical_document("sour espresso") == "sour espresso"

    async def test_empty_reply_returns_query(self):
        llm = StubLLM([""])
        assert await QueryRewriter(llm).hypothetical_document("sour espresso") == "sour espresso"
