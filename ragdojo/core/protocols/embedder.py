"""Embedder protocol for dependency injection."""
from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbedderProtocol(Protocol):
    """Protocol for embedding service."""

    @property
    def model_name(self) -> str:
        """Identifier of the embedding model (used to name collections)."""
        ...

    @property
    def dimensions(self) -> int:
        """Length of the produced vectors."""
        ...

    async def embed(self, text: str) -> list[float]:
        """Embed a single text.

        Args:
            text: Text to embed.

        Returns:
            Embedding vector.

        Raises:
            UpstreamUnavailableError: Provider call failed.
        """
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed several texts in one call.

        Args:
            texts: Texts to embed.

        Returns:
            One vector per input, in input order.

        Raises:
            UpstreamUnavailableError: Provider call failed.
        """
        ...
