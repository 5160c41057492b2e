"""Reranker protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import Candidate


@runtime_checkable
class RerankerProtocol(Protocol):
    """Protocol for reranking service."""

    async def rerank(
        self,
        query: str,
        candidates: list[Candidate],
        top_k: int,
    ) -> list[Candidate]:
        """Rerank a shortlist by relevance.

        Never raises and never returns more than ``top_k`` items.

        Args:
            query: User query.
            candidates: Ranked shortlist.
            top_k: Maximum number of results.

        Returns:
            Reranked candidates sorted by score (descending).
        """
        ...
