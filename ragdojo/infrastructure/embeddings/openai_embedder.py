import logging

from openai import AsyncOpenAI, OpenAIError

from ragdojo.core.errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embeddings from an OpenAI-compatible ``/embeddings`` endpoint."""

    def __init__(
        self,
        base_url: str | None = "http://localhost:11434/v1",
        model: str = "all-minilm",
        dimensions: int = 384,
        api_key: str | None = None,
    ):
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key or "not-needed")
        self._model = model
        self._dimensions = dimensions

    @property
    def model_name(self) -> str:
        return self._model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> list[float]:
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        try:
            response = await self._client.embeddings.create(model=self._model, input=texts)
        except OpenAIError as e:
            logger.error(f"Embedding request failed ({self._model}): {e}")
            raise UpstreamUnavailableError("embedding", str(e)) from e

        data = sorted(response.data, key=lambda d: d.index)
        if len(data) != len(texts):
            raise UpstreamUnavailableError(
                "embedding", f"expected {len(texts)} vectors, got {len(data)}"
            )
        logger.debug(f"Embedded {len(texts)} texts with {self._model}")
        return [list(d.embedding) for d in data]
