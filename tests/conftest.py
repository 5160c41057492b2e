"""
Shared test fixtures for the ragdojo test suite.

Provides deterministic fakes for the gateways: a bag-of-words embedder,
a scripted LLM and a whitespace token counter. Vector storage uses the
real in-memory store.
"""

import asyncio
from collections import deque
from typing import Iterable

import pytest

from ragdojo.core.models.chat import ChatMessage
from ragdojo.core.models.document import CorpusItem
from ragdojo.core.services.chunker import DocumentChunker
from ragdojo.core.services.ingest_service import IngestService
from ragdojo.core.services.query_rewriter import QueryRewriter
from ragdojo.core.services.reranker import LLMReranker
from ragdojo.core.services.search_service import SearchService
from ragdojo.core.state import RagState
from ragdojo.core.strategies.scoring import tokenize
from ragdojo.infrastructure.vector_stores.in_memory_store import InMemoryVectorStore


class BagOfWordsEmbedder:
    """Bag-of-words vectors: texts sharing words get similar vectors.

    Every distinct token gets its own dimension, so unrelated texts score
    exactly 0.
    """

    def __init__(self, dimensions: int = 512, model_name: str = "bow-embedder"):
        self._dimensions = dimensions
        self._model_name = model_name
        self._vocabulary: dict[str, int] = {}
        self.calls: list[str] = []
        self.error: Exception | None = None

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        for token in tokenize(text):
            index = self._vocabulary.setdefault(token, len(self._vocabulary) % self._dimensions)
            vector[index] += 1.0
        return vector

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vector(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.extend(texts)
        if self.error is not None:
            raise self.error
        return [self.vector(t) for t in texts]


class StubLLM:
    """Returns scripted replies in order; an Exception entry is raised."""

    def __init__(self, replies: Iterable[str | Exception] = (), default: str = ""):
        self.replies = deque(replies)
        self.default = default
        self.requests: list[list[ChatMessage]] = []

    @property
    def model_name(self) -> str:
        return "stub-llm"

    async def complete(self, messages: list[ChatMessage]) -> str:
        self.requests.append(list(messages))
        reply = self.replies.popleft() if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply


class BlockingLLM(StubLLM):
    """Blocks every completion until cancelled; ``started`` is set on entry."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()

    async def complete(self, messages: list[ChatMessage]) -> str:
        self.requests.append(list(messages))
        self.started.set()
        await asyncio.Event().wait()
        return "unreachable"


class StubTokenCounter:
    def count(self, text: str) -> int:
        return len(text.split())


def make_items(embedder: BagOfWordsEmbedder, texts: dict[str, str]) -> list[CorpusItem]:
    """Corpus items embedded with ``embedder``, keyed by id."""
    return [
        CorpusItem(id=item_id, text=text, source_label="test", embedding=embedder.vector(text))
        for item_id, text in texts.items()
    ]


# ---------------------------------------------------------------------------
# Gateway fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def embedder():
    return BagOfWordsEmbedder()


@pytest.fixture
def llm():
    return StubLLM()


@pytest.fixture
def token_counter():
    return StubTokenCounter()


@pytest.fixture
def vector_store():
    return InMemoryVectorStore()


@pytest.fixture
def state():
    return RagState()


# ---------------------------------------------------------------------------
# Service fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def search_service(embedder, llm):
    return SearchService(
        embedder=embedder,
        rewriter=QueryRewriter(llm),
        reranker=LLMReranker(llm),
    )


@pytest.fixture
def ingest_service(embedder, vector_store, state, tmp_path):
    return IngestService(
        embedder=embedder,
        vector_store=vector_store,
        chunker=DocumentChunker(chunk_size=200, chunk_overlap=40),
        state=state,
        docs_path=str(tmp_path),
    )


@pytest.fixture
def coffee_texts():
    return {
        "c1": "Espresso is brewed under high pressure and has a layer of crema.",
        "c2": "Milk foam for a cappuccino is made with the steam wand.",
        "c3": "Descale the coffee machine every few months.",
        "c4": "Arabica beans grow at high altitude.",
        "c5": "Cold brew steeps for twelve hours in cold water.",
    }
