"""Embedding visualization - 2D projection of the active collection."""

import logging
from typing import Optional

import numpy as np

from ..models.document import EmbeddingPoint, EmbeddingVisualization
from ..models.search import SearchEnhancements
from ..protocols.embedder import EmbedderProtocol
from ..protocols.vector_store import VectorStoreProtocol
from ..state import RagState
from .search_service import CollectionSource, SearchService

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 100


def project_2d(vectors: np.ndarray) -> np.ndarray:
    """PCA to two components via SVD of the centered matrix.

    Fewer than two points, or a single dimension, map to the origin.
    """
    n = vectors.shape[0]
    if n < 2 or vectors.ndim != 2 or vectors.shape[1] < 2:
        return np.zeros((n, 2))

    centered = vectors - vectors.mean(axis=0)
    _, _, vt = np.linalg.svd(centered, full_matrices=False)
    return centered @ vt[:2].T


def _preview(text: str) -> str:
    if len(text) <= PREVIEW_LENGTH:
        return text
    return text[:PREVIEW_LENGTH] + "..."


class VisualizationService:
    """Projects stored chunk embeddings for plotting."""

    def __init__(
        self,
        embedder: EmbedderProtocol,
        vector_store: VectorStoreProtocol,
        search_service: SearchService,
        state: RagState,
    ):
        self._embedder = embedder
        self._vector_store = vector_store
        self._search = search_service
        self._state = state

    async def visualize(
        self,
        query: Optional[str] = None,
        max_points: int = 100,
        top_k: int = 5,
    ) -> EmbeddingVisualization:
        """Project up to ``max_points`` chunks (and the query) to 2D.

        Args:
            query: Optional query to place among the chunks.
            max_points: Maximum number of chunks to include.
            top_k: Number of chunks whose relevance score is attached.

        Returns:
            Projected points of the active collection.
        """
        model = self._embedder.model_name
        collection = self._state.collections.name_for(model)
        chunks = [c for c in self._state.chunks.chunks(collection) if c.embedding][:max_points]

        vectors = [c.embedding for c in chunks]
        relevance: dict[str, float] = {}
        query_vector = None

        if query and query.strip():
            if await self._state.collections.exists(model):
                retrieval = await self._search.search(
                    query,
                    CollectionSource(self._vector_store, collection, self._state.chunks),
                    enhancements=SearchEnhancements(),
                    top_k=top_k,
                    min_score=0.0,
                )
                query_vector = retrieval.query_vector
                relevance = {c.id: round(c.combined_score, 4) for c in retrieval.candidates}
            else:
                query_vector = await self._embedder.embed(query)
            vectors.append(query_vector)

        if not vectors:
            logger.info(f"No embeddings to visualize in {collection}")
            return EmbeddingVisualization(
                points=[],
                collection_name=collection,
                embedding_model=model,
                original_dimensions=self._embedder.dimensions,
            )

        coordinates = project_2d(np.asarray(vectors, dtype=float))

        points = [
            EmbeddingPoint(
                id=chunk.id,
                text_preview=_preview(chunk.content),
                source_file=chunk.source_file_name,
                x=float(coordinates[i, 0]),
                y=float(coordinates[i, 1]),
                relevance_score=relevance.get(chunk.id),
            )
            for i, chunk in enumerate(chunks)
        ]
        if query_vector is not None:
            points.append(
                EmbeddingPoint(
                    id="query",
                    text_preview=_preview(query),
                    source_file="",
                    x=float(coordinates[-1, 0]),
                    y=float(coordinates[-1, 1]),
                    is_query=True,
                )
            )

        logger.info(f"Projected {len(points)} points from {collection}")
        return EmbeddingVisualization(
            points=points,
            collection_name=collection,
            embedding_model=model,
            original_dimensions=len(vectors[0]),
        )
