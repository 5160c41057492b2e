"""Vector store protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.document import Chunk


@runtime_checkable
class VectorStoreProtocol(Protocol):
    """Protocol for vector storage addressed by collection name."""

    async def ensure_exists(self, collection: str, dimensions: int) -> None:
        """Create the collection if it does not exist."""
        ...

    async def upsert(self, collection: str, chunks: list[Chunk]) -> None:
        """Insert or replace embedded chunks.

        Args:
            collection: Collection name.
            chunks: Chunks with ``embedding`` set.
        """
        ...

    async def search(
        self,
        collection: str,
        query_vector: list[float],
        k: int = 5,
    ) -> list[tuple[Chunk, float]]:
        """Nearest neighbours by cosine similarity.

        Args:
            collection: Collection name.
            query_vector: Query embedding.
            k: Number of results to return.

        Returns:
            (chunk, similarity) pairs, best first.
        """
        ...

    async def delete_where(self, collection: str, document_id: str) -> None:
        """Remove all chunks of one source document."""
        ...

    async def delete_ids(self, collection: str, ids: list[str]) -> None:
        """Remove chunks by id; unknown ids are ignored."""
        ...

    async def delete(self, collection: str) -> None:
        """Drop the whole collection."""
        ...

    async def count(self, collection: str) -> int:
        """Get chunk count."""
        ...
