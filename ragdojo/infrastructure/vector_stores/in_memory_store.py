import logging
import threading

from ragdojo.core.errors import InvalidInputError
from ragdojo.core.models.document import Chunk
from ragdojo.core.strategies.scoring import cosine_similarity

logger = logging.getLogger(__name__)


class InMemoryVectorStore:
    """Process-local vector store with exhaustive cosine search."""

    def __init__(self):
        self._collections: dict[str, dict[str, Chunk]] = {}
        self._dimensions: dict[str, int] = {}
        self._lock = threading.Lock()

    async def ensure_exists(self, collection: str, dimensions: int) -> None:
        with self._lock:
            if collection not in self._collections:
                self._collections[collection] = {}
                self._dimensions[collection] = dimensions
                logger.info(f"Created collection: {collection} ({dimensions} dims)")

    async def upsert(self, collection: str, chunks: list[Chunk]) -> None:
        with self._lock:
            dimensions = self._dimensions.get(collection)
            for chunk in chunks:
                if chunk.embedding is None:
                    raise InvalidInputError(f"Chunk {chunk.id} has no embedding")
                if dimensions is not None and len(chunk.embedding) != dimensions:
                    raise InvalidInputError(
                        f"Chunk {chunk.id} has {len(chunk.embedding)} dimensions, "
                        f"collection {collection} expects {dimensions}"
                    )

            stored = self._collections.setdefault(collection, {})
            for chunk in chunks:
                stored[chunk.id] = chunk
        logger.debug(f"Upserted {len(chunks)} chunks into {collection}")

    async def search(
        self,
        collection: str,
        query_vector: list[float],
        k: int = 5,
    ) -> list[tuple[Chunk, float]]:
        with self._lock:
            chunks = list(self._collections.get(collection, {}).values())

        scored = [(chunk, cosine_similarity(query_vector, chunk.embedding)) for chunk in chunks]
        scored.sort(key=lambda pair: (-pair[1], pair[0].id))
        return scored[:k]

    async def get_all(self, collection: str) -> list[Chunk]:
        with self._lock:
            return list(self._collections.get(collection, {}).values())

    async def delete_where(self, collection: str, document_id: str) -> None:
        with self._lock:
            stored = self._collections.get(collection)
            if not stored:
                return
            for chunk_id in [c.id for c in stored.values() if c.source_document_id == document_id]:
                del stored[chunk_id]

    async def delete_ids(self, collection: str, ids: list[str]) -> None:
        with self._lock:
            stored = self._collections.get(collection)
            if not stored:
                return
            for chunk_id in ids:
                stored.pop(chunk_id, None)

    async def delete(self, collection: str) -> None:
        with self._lock:
            self._collections.pop(collection, None)
            self._dimensions.pop(collection, None)
        logger.info(f"Deleted collection: {collection}")

    async def count(self, collection: str) -> int:
        with self._lock:
            return len(self._collections.get(collection, {}))

    async def list_collections(self) -> list[str]:
        with self._lock:
            return sorted(self._collections)
