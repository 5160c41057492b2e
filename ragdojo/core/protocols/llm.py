"""LLM protocol for dependency injection."""
from typing import Protocol, runtime_checkable

from ..models.chat import ChatMessage


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for chat completion client."""

    @property
    def model_name(self) -> str:
        ...

    async def complete(self, messages: list[ChatMessage]) -> str:
        """Generate a reply for role-tagged messages.

        Args:
            messages: Conversation, system prompt first.

        Returns:
            Generated text (may be empty).

        Raises:
            UpstreamUnavailableError: Provider call failed.
        """
        ...
