"""Candidate selection before scoring.

Two modes: an exhaustive nearest-neighbour call against the candidate
source, and a deterministic simulation of an approximate (HNSW-style)
index scan. The simulation is not a graph index; it only keeps the
pruning contract: a bounded candidate count, keyword-overlapping items
first, and the same selection for the same query and corpus.
"""

import logging
from abc import ABC, abstractmethod
from typing import Sequence

from ..models.document import Candidate, CorpusItem
from .scoring import cosine_similarity, keyword_matches, tokenize

logger = logging.getLogger(__name__)

_HASH_MASK = 0xFFFFFFFF


def stable_hash(text: str, seed: int = 0) -> int:
    """Polynomial string hash, stable across processes."""
    h = seed
    for ch in text:
        h = (h * 31 + ord(ch)) & _HASH_MASK
    return h


def effective_ef_search(configured: int, top_k: int, corpus_size: int) -> int:
    """Clamp ``configured`` into ``[max(top_k, 1), corpus_size]``."""
    lower = max(top_k, 1)
    return max(0, min(max(configured, lower), corpus_size))


def score_items(
    items: Sequence[CorpusItem],
    query_vector: Sequence[float],
) -> list[Candidate]:
    """Cosine-score items that carry an embedding."""
    candidates = []
    for item in items:
        if item.embedding is None:
            continue
        tag_score = None
        if item.tag_embedding is not None:
            tag_score = cosine_similarity(query_vector, item.tag_embedding)
        candidates.append(
            Candidate.from_item(
                item,
                vector_score=cosine_similarity(query_vector, item.embedding),
                tag_vector_score=tag_score,
            )
        )
    return candidates


class CandidateSource(ABC):
    """Where candidates come from: an in-memory corpus or a vector collection."""

    @abstractmethod
    async def nearest(self, query_vector: list[float], k: int) -> list[Candidate]:
        """Top-``k`` candidates by vector similarity."""
        ...

    @abstractmethod
    async def items(self) -> list[CorpusItem]:
        """Every item of the corpus, with embeddings."""
        ...


class InMemoryCorpusSource(CandidateSource):
    """Full scan over an in-memory corpus."""

    def __init__(self, items: Sequence[CorpusItem]):
        self._items = list(items)

    async def nearest(self, query_vector: list[float], k: int) -> list[Candidate]:
        candidates = score_items(self._items, query_vector)
        candidates.sort(key=lambda c: (-c.vector_score, c.id))
        return candidates[:k]

    async def items(self) -> list[CorpusItem]:
        return list(self._items)


class Pruner(ABC):
    """Restricts the candidate set before fusion."""

    @abstractmethod
    async def select(
        self,
        query: str,
        query_vector: list[float],
        source: CandidateSource,
        top_k: int,
    ) -> list[Candidate]:
        ...


class ExhaustivePruner(Pruner):
    """Every item is considered; the source returns the best ``pool_size``."""

    def __init__(self, pool_size: int = 20):
        self._pool_size = pool_size

    async def select(
        self,
        query: str,
        query_vector: list[float],
        source: CandidateSource,
        top_k: int,
    ) -> list[Candidate]:
        return await source.nearest(query_vector, max(self._pool_size, top_k))


class ApproximatePruner(Pruner):
    """Deterministic stand-in for an approximate index scan."""

    def __init__(self, ef_search: int = 32):
        """Initialize pruner.

        Args:
            ef_search: Configured candidate breadth before clamping.
        """
        self._ef_search = ef_search

    def prune(self, query: str, items: Sequence[CorpusItem], top_k: int) -> list[CorpusItem]:
        """Pick the ``efSearch`` items an approximate scan would visit.

        Keyword-overlap estimate first (exact body and tag hits, no partial
        credit), ties by ascending id. A query without usable tokens gets a
        pseudo-random but reproducible sample seeded by the query hash.
        """
        ef = effective_ef_search(self._ef_search, top_k, len(items))
        if ef == 0:
            return []

        query_tokens = tokenize(query)
        if query_tokens:
            estimates = []
            for item in items:
                matches, _ = keyword_matches(query_tokens, item.text, item.tags, partial=False)
                estimates.append((-matches, item.id, item))
            estimates.sort(key=lambda e: (e[0], e[1]))
            selected = [e[2] for e in estimates[:ef]]
        else:
            seed = stable_hash(query)
            hashed = sorted(items, key=lambda item: (stable_hash(item.id, seed), item.id))
            selected = hashed[:ef]

        logger.info(
            f"Approximate pruning: {len(items)} → {len(selected)} candidates (ef={ef})"
        )
        return selected

    async def select(
        self,
        query: str,
        query_vector: list[float],
        source: CandidateSource,
        top_k: int,
    ) -> list[Candidate]:
        items = await source.items()
        return score_items(self.prune(query, items, top_k), query_vector)
