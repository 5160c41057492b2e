"""Process-wide tables shared by concurrent requests.

Each table holds a single coarse lock. The collection registry uses an
asyncio lock because its check-or-create awaits the vector store.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field

from .errors import NotFoundError
from .models.document import Chunk, CorpusItem, SourceDocument
from .protocols.vector_store import VectorStoreProtocol

logger = logging.getLogger(__name__)


def collection_name_for(model: str, prefix: str = "documents_") -> str:
    """Collection name for an embedding model (``documents_<model>``)."""
    sanitized = model.replace("/", "-").replace(":", "-").replace(".", "-").lower()
    return f"{prefix}{sanitized}"


class DocumentTable:
    """Source documents kept for re-ingestion."""

    def __init__(self):
        self._documents: dict[str, SourceDocument] = {}
        self._lock = threading.Lock()

    def add(self, document: SourceDocument) -> None:
        with self._lock:
            self._documents[document.id] = document

    def get(self, document_id: str) -> SourceDocument:
        with self._lock:
            document = self._documents.get(document_id)
        if document is None:
            raise NotFoundError(f"Document with ID {document_id} not found")
        return document

    def all(self) -> list[SourceDocument]:
        with self._lock:
            return sorted(self._documents.values(), key=lambda d: d.uploaded_at)

    def remove(self, document_id: str) -> SourceDocument:
        with self._lock:
            document = self._documents.pop(document_id, None)
        if document is None:
            raise NotFoundError(f"Document with ID {document_id} not found")
        return document

    def clear(self) -> None:
        with self._lock:
            self._documents.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._documents)


class ChunkIndex:
    """Embedded chunks per collection and source document."""

    def __init__(self):
        self._chunks: dict[str, dict[str, list[Chunk]]] = {}
        self._lock = threading.Lock()

    def replace(self, collection: str, document_id: str, chunks: list[Chunk]) -> None:
        with self._lock:
            self._chunks.setdefault(collection, {})[document_id] = list(chunks)

    def document_chunks(self, collection: str, document_id: str) -> list[Chunk]:
        with self._lock:
            return list(self._chunks.get(collection, {}).get(document_id, []))

    def collections_for(self, document_id: str) -> list[str]:
        with self._lock:
            return sorted(name for name, by_document in self._chunks.items() if document_id in by_document)

    def remove(self, collection: str, document_id: str) -> None:
        with self._lock:
            self._chunks.get(collection, {}).pop(document_id, None)

    def drop_collection(self, collection: str) -> None:
        with self._lock:
            self._chunks.pop(collection, None)

    def clear(self) -> None:
        with self._lock:
            self._chunks.clear()

    def chunks(self, collection: str) -> list[Chunk]:
        with self._lock:
            by_document = self._chunks.get(collection, {})
            return [c for chunks in by_document.values() for c in chunks]

    def items(self, collection: str) -> list[CorpusItem]:
        return [
            CorpusItem(
                id=c.id,
                text=c.content,
                source_label=c.source_file_name,
                embedding=c.embedding,
                chunk_index=c.chunk_index,
            )
            for c in self.chunks(collection)
            if c.embedding is not None
        ]

    def document_count(self, collection: str) -> int:
        with self._lock:
            return len(self._chunks.get(collection, {}))


class EmbeddingCache:
    """Per-model vectors of the demo corpus, keyed by kind then item id."""

    def __init__(self):
        self._vectors: dict[str, dict[str, dict[str, list[float]]]] = {}
        self._lock = threading.Lock()

    def put(self, model: str, kind: str, vectors: dict[str, list[float]]) -> None:
        with self._lock:
            self._vectors.setdefault(model, {})[kind] = dict(vectors)

    def get(self, model: str, kind: str) -> dict[str, list[float]]:
        with self._lock:
            return dict(self._vectors.get(model, {}).get(kind, {}))

    def has(self, model: str, kind: str = "content") -> bool:
        with self._lock:
            return bool(self._vectors.get(model, {}).get(kind))

    def clear(self, model: str | None = None) -> None:
        with self._lock:
            if model is None:
                self._vectors.clear()
            else:
                self._vectors.pop(model, None)


@dataclass(frozen=True)
class CollectionEntry:
    name: str
    embedding_model: str
    dimensions: int


class CollectionRegistry:
    """Collections created in the vector store, by name."""

    def __init__(self, prefix: str = "documents_"):
        self._prefix = prefix
        self._entries: dict[str, CollectionEntry] = {}
        self._lock = asyncio.Lock()

    def name_for(self, model: str) -> str:
        return collection_name_for(model, self._prefix)

    async def get_or_create(
        self,
        model: str,
        dimensions: int,
        vector_store: VectorStoreProtocol,
    ) -> str:
        """Atomically ensure the collection for ``model`` exists."""
        name = self.name_for(model)
        async with self._lock:
            if name in self._entries:
                return name

            logger.info(
                f"Creating collection {name} for model {model} "
                f"with {dimensions} dimensions"
            )
            await vector_store.ensure_exists(name, dimensions)
            self._entries[name] = CollectionEntry(name, model, dimensions)
        return name

    async def exists(self, model: str) -> bool:
        async with self._lock:
            return self.name_for(model) in self._entries

    async def entries(self) -> list[CollectionEntry]:
        async with self._lock:
            return list(self._entries.values())

    async def remove(self, name: str) -> CollectionEntry:
        async with self._lock:
            entry = self._entries.pop(name, None)
        if entry is None:
            raise NotFoundError(f"Collection {name} not found")
        return entry

    async def clear(self) -> list[CollectionEntry]:
        async with self._lock:
            removed = list(self._entries.values())
            self._entries.clear()
        return removed


@dataclass
class RagState:
    """All shared tables, owned by the container and passed to services."""
    documents: DocumentTable = field(default_factory=DocumentTable)
    chunks: ChunkIndex = field(default_factory=ChunkIndex)
    embeddings: EmbeddingCache = field(default_factory=EmbeddingCache)
    collections: CollectionRegistry = field(default_factory=CollectionRegistry)
