import logging
from typing import Any

import httpx

from ragdojo.core.errors import UpstreamUnavailableError
from ragdojo.core.models.document import Chunk

logger = logging.getLogger(__name__)


class ChromaVectorStore:
    """Vector store using ChromaDB HTTP API (v2)."""

    def __init__(
        self,
        host: str = "localhost",
        port: int = 8001,
        tenant: str = "default_tenant",
        database: str = "default_database",
        timeout: float = 30.0,
    ):
        """Initialize ChromaDB client.

        Args:
            host: ChromaDB host.
            port: ChromaDB port.
            tenant: Tenant name.
            database: Database name.
            timeout: Request timeout in seconds.
        """
        self._base_url = f"http://{host}:{port}/api/v2"
        self._tenant = tenant
        self._database = database
        self._client = httpx.AsyncClient(timeout=timeout)
        self._collection_ids: dict[str, str] = {}

    @property
    def _collections_url(self) -> str:
        return f"{self._base_url}/tenants/{self._tenant}/databases/{self._database}/collections"

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            resp = await self._client.request(method, url, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"ChromaDB request failed: {method} {url}: {e}")
            raise UpstreamUnavailableError("chroma", str(e)) from e
        return resp.json() if resp.content else None

    async def ensure_exists(self, collection: str, dimensions: int) -> None:
        await self._collection_id(collection, dimensions)

    async def _collection_id(self, collection: str, dimensions: int | None = None) -> str:
        """Get or create collection, return ID."""
        if collection in self._collection_ids:
            return self._collection_ids[collection]

        metadata: dict[str, Any] = {"hnsw:space": "cosine"}
        if dimensions is not None:
            metadata["dimensions"] = dimensions

        data = await self._request(
            "POST",
            self._collections_url,
            json={"name": collection, "metadata": metadata, "get_or_create": True},
        )
        self._collection_ids[collection] = data["id"]
        logger.info(f"Using collection: {collection} ({data['id']})")
        return data["id"]

    async def upsert(self, collection: str, chunks: list[Chunk]) -> None:
        if not chunks:
            return
        col_id = await self._collection_id(collection)
        await self._request(
            "POST",
            f"{self._collections_url}/{col_id}/upsert",
            json={
                "ids": [c.id for c in chunks],
                "embeddings": [c.embedding for c in chunks],
                "documents": [c.content for c in chunks],
                "metadatas": [
                    {
                        "source_document_id": c.source_document_id,
                        "source_file_name": c.source_file_name,
                        "chunk_index": c.chunk_index,
                        "start_offset": c.start_offset,
                        "end_offset": c.end_offset,
                    }
                    for c in chunks
                ],
            },
        )

    async def search(
        self,
        collection: str,
        query_vector: list[float],
        k: int = 5,
    ) -> list[tuple[Chunk, float]]:
        """Search by embedding; similarity is ``1 - cosine distance``."""
        col_id = await self._collection_id(collection)
        data = await self._request(
            "POST",
            f"{self._collections_url}/{col_id}/query",
            json={
                "query_embeddings": [query_vector],
                "n_results": k,
                "include": ["documents", "metadatas", "distances", "embeddings"],
            },
        )

        results = []
        if data and data.get("ids") and data["ids"][0]:
            embeddings = (data.get("embeddings") or [[]])[0] or []
            for i, chunk_id in enumerate(data["ids"][0]):
                metadata = data["metadatas"][0][i] or {}
                chunk = Chunk(
                    id=chunk_id,
                    content=data["documents"][0][i] or "",
                    source_document_id=metadata.get("source_document_id", ""),
                    source_file_name=metadata.get("source_file_name", "Unknown"),
                    chunk_index=int(metadata.get("chunk_index", 0)),
                    start_offset=int(metadata.get("start_offset", 0)),
                    end_offset=int(metadata.get("end_offset", 0)),
                    embedding=list(embeddings[i]) if i < len(embeddings) else None,
                )
                results.append((chunk, 1.0 - data["distances"][0][i]))

        results.sort(key=lambda pair: (-pair[1], pair[0].id))
        return results

    async def delete_where(self, collection: str, document_id: str) -> None:
        col_id = await self._collection_id(collection)
        await self._request(
            "POST",
            f"{self._collections_url}/{col_id}/delete",
            json={"where": {"source_document_id": document_id}},
        )

    async def delete_ids(self, collection: str, ids: list[str]) -> None:
        if not ids:
            return
        col_id = await self._collection_id(collection)
        await self._request(
            "POST",
            f"{self._collections_url}/{col_id}/delete",
            json={"ids": list(ids)},
        )

    async def delete(self, collection: str) -> None:
        await self._request("DELETE", f"{self._collections_url}/{collection}")
        self._collection_ids.pop(collection, None)
        logger.info(f"Deleted collection: {collection}")

    async def count(self, collection: str) -> int:
        col_id = await self._collection_id(collection)
        return int(await self._request("GET", f"{self._collections_url}/{col_id}/count") or 0)

    async def list_collections(self) -> list[str]:
        data = await self._request("GET", self._collections_url)
        return sorted(c["name"] for c in data or [])

    async def aclose(self) -> None:
        await self._client.aclose()
