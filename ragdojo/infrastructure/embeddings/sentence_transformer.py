import asyncio
import logging
from functools import cached_property

from sentence_transformers import SentenceTransformer

from ragdojo.core.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class SentenceTransformerEmbedder:
    """Local embeddings; encoding runs in a worker thread."""

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2"):
        self._model_name = model_name

    @cached_property
    def model(self) -> SentenceTransformer:
        logger.info(f"Loading embedding model: {self._model_name}")
        return SentenceTransformer(self._model_name)

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> int:
        return self.model.get_sentence_embedding_dimension()

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            encoded = await asyncio.to_thread(self.model.encode, texts, convert_to_numpy=True)
        except (OSError, RuntimeError, ValueError) as e:
            logger.error(f"Local embedding failed ({self._model_name}): {e}")
            raise UpstreamUnavailableError("embedding", str(e)) from e
        return encoded.tolist()
