"""Ingest service - document chunking, embedding and indexing."""

import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from ..errors import InvalidInputError, NotFoundError, UpstreamUnavailableError
from ..models.document import Chunk, CollectionInfo, IngestResult, SourceDocument
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..state import RagState
from .chunker import DocumentChunker

logger = logging.getLogger(__name__)


@contextmanager
def vector_store_errors():
    """Translate vector store failures into UpstreamUnavailableError."""
    try:
        yield
    except (UpstreamUnavailableError, InvalidInputError):
        raise
    except Exception as e:
        raise UpstreamUnavailableError("vector store", str(e)) from e


class IngestService:
    """Service for indexing documents into the active collection."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        chunker: DocumentChunker,
        state: RagState,
        docs_path: str = "./docs",
    ):
        """Initialize ingest service.

        Args:
            embedder: Embedding service.
            vector_store: Vector store.
            chunker: Document chunker.
            state: Shared document/chunk/collection tables.
            docs_path: Default folder for directory ingestion.
        """
        self._embedder = embedder
        self._vector_store = vector_store
        self._chunker = chunker
        self._state = state
        self._docs_path = Path(docs_path)

        self._loader: Optional["CompositeLoader"] = None

    @property
    def loader(self):
        """Lazy load document loader."""
        if self._loader is None:
            from ragdojo.infrastructure.document_loaders import CompositeLoader

            self._loader = CompositeLoader()
        return self._loader

    @property
    def active_collection(self) -> str:
        return self._state.collections.name_for(self._embedder.model_name)

    async def ingest(self, file_name: str, content: str) -> IngestResult:
        """Store, chunk, embed and index one document.

        Args:
            file_name: Display name of the document.
            content: Full text.

        Returns:
            Ingestion summary.

        Raises:
            InvalidInputError: Missing file name.
            UpstreamUnavailableError: Embedding or storage failed.
        """
        if not file_name or not file_name.strip():
            raise InvalidInputError("file_name is required")

        document = SourceDocument(file_name=file_name, content=content or "")
        result = await self._index(document)
        self._state.documents.add(document)
        return result

    async def reingest(self, document_id: str) -> IngestResult:
        """Re-chunk and re-embed a stored document, replacing its chunks."""
        document = self._state.documents.get(document_id)
        return await self._index(document)

    async def _index(self, document: SourceDocument) -> IngestResult:
        started = time.perf_counter()
        logger.info(f"Ingesting document: {document.file_name}")

        chunks = self._chunker.chunk(document)
        await self._embed_chunks(chunks)

        collection = await self._state.collections.get_or_create(
            self._embedder.model_name,
            self._embedder.dimensions,
            self._vector_store,
        )

        new_ids = {c.id for c in chunks}
        stale_ids = [
            c.id
            for c in self._state.chunks.document_chunks(collection, document.id)
            if c.id not in new_ids
        ]

        # New chunks go in before stale ones leave; a failure keeps the old set.
        with vector_store_errors():
            if chunks:
                await self._vector_store.upsert(collection, chunks)
        try:
            with vector_store_errors():
                await self._vector_store.delete_ids(collection, stale_ids)
        except UpstreamUnavailableError:
            await self._discard(collection, list(new_ids))
            raise

        self._state.chunks.replace(collection, document.id, chunks)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            f"Ingested {len(chunks)} chunks from {document.file_name} "
            f"into collection {collection} in {elapsed_ms}ms"
        )
        return IngestResult(
            document_id=document.id,
            file_name=document.file_name,
            chunks_created=len(chunks),
            collection_name=collection,
            processing_time_ms=elapsed_ms,
        )

    async def _discard(self, collection: str, ids: list[str]) -> None:
        try:
            await self._vector_store.delete_ids(collection, ids)
        except Exception as e:
            logger.warning(f"Failed to roll back {len(ids)} chunks in {collection}: {e}")

    async def _embed_chunks(self, chunks: list[Chunk]) -> None:
        if not chunks:
            return

        logger.info(f"Embedding {len(chunks)} document chunks")
        try:
            vectors = await self._embedder.embed_batch([c.content for c in chunks])
        except UpstreamUnavailableError:
            raise
        except Exception as e:
            raise UpstreamUnavailableError("embedding", str(e)) from e

        if len(vectors) != len(chunks):
            raise UpstreamUnavailableError(
                "embedding", f"expected {len(chunks)} vectors, got {len(vectors)}"
            )
        for chunk, vector in zip(chunks, vectors):
            chunk.embedding = list(vector)

    async def ingest_directory(self, path: str | Path | None = None) -> list[IngestResult]:
        """Ingest every supported file in a folder.

        Args:
            path: Folder to scan (defaults to the configured docs path).

        Returns:
            One result per ingested file.
        """
        docs_path = Path(path) if path is not None else self._docs_path
        if not docs_path.exists():
            raise NotFoundError(f"Docs path not found: {docs_path}")

        results = []
        for file_path in sorted(docs_path.iterdir()):
            if not self.loader.supports(file_path):
                continue

            content = self.loader.load(file_path)
            if not content:
                logger.debug(f"Skip empty: {file_path.name}")
                continue

            results.append(await self.ingest(file_path.name, content))

        logger.info(
            f"Indexing complete: {sum(r.chunks_created for r in results)} chunks "
            f"from {len(results)} files"
        )
        return results

    def list_documents(self) -> list[SourceDocument]:
        return self._state.documents.all()

    def get_document(self, document_id: str) -> SourceDocument:
        return self._state.documents.get(document_id)

    async def delete_document(self, document_id: str) -> None:
        """Remove a document and its chunks from every collection.

        Raises:
            NotFoundError: Unknown document.
            UpstreamUnavailableError: Vector store failed; the document and
                any chunks not yet removed stay in place.
        """
        self._state.documents.get(document_id)
        for collection in self._state.chunks.collections_for(document_id):
            with vector_store_errors():
                await self._vector_store.delete_where(collection, document_id)
            self._state.chunks.remove(collection, document_id)

        self._state.documents.remove(document_id)
        logger.info(f"Deleted source document {document_id}")

    async def delete_all(self) -> None:
        """Delete all documents and every registered collection."""
        logger.info("Deleting all documents and collections")
        self._state.documents.clear()

        for entry in await self._state.collections.clear():
            try:
                await self._vector_store.delete(entry.name)
            except Exception as e:
                logger.warning(f"Failed to delete collection {entry.name} from vector store: {e}")
        self._state.chunks.clear()

        logger.info("All documents and collections deleted")

    async def auto_ingest_if_needed(self) -> int:
        """Re-ingest stored documents when the active model has no collection.

        Returns:
            Number of documents re-ingested.
        """
        model = self._embedder.model_name
        if await self._state.collections.exists(model):
            return 0

        documents = self._state.documents.all()
        if not documents:
            return 0

        logger.info(f"Auto-ingesting {len(documents)} documents for model {model}")
        for document in documents:
            await self._index(document)
        return len(documents)

    async def list_collections(self) -> list[CollectionInfo]:
        active = self._embedder.model_name
        return [
            CollectionInfo(
                name=entry.name,
                embedding_model=entry.embedding_model,
                dimensions=entry.dimensions,
                document_count=self._state.chunks.document_count(entry.name),
                is_active=entry.embedding_model == active,
            )
            for entry in await self._state.collections.entries()
        ]

    async def delete_collection(self, name: str) -> None:
        """Drop one collection and its chunk index entries."""
        logger.info(f"Deleting collection {name}")
        await self._state.collections.remove(name)
        self._state.chunks.drop_collection(name)
        await self._vector_store.delete(name)
        logger.info(f"Deleted collection {name}")
