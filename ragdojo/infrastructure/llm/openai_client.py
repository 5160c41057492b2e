import logging

from openai import AsyncOpenAI, OpenAIError

from ragdojo.core.errors import UpstreamUnavailableError
from ragdojo.core.models.chat import ChatMessage

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """LLM client for any OpenAI-compatible API (OpenAI, Ollama, LM Studio)."""

    def __init__(
        self,
        base_url: str | None = "http://localhost:11434/v1",
        model: str = "llama3.2",
        api_key: str | None = None,
        max_tokens: int = 1024,
        temperature: float = 0.1,
    ):
        """Initialize chat client.

        Args:
            base_url: API URL (None for api.openai.com).
            model: Model name.
            api_key: API key; local servers accept any value.
            max_tokens: Max response tokens.
            temperature: Sampling temperature.
        """
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key or "not-needed")
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def model_name(self) -> str:
        return self._model

    async def complete(self, messages: list[ChatMessage]) -> str:
        """Generate a reply for role-tagged messages.

        Args:
            messages: Conversation, system prompt first.

        Returns:
            Generated text, empty when the model returned nothing.

        Raises:
            UpstreamUnavailableError: Provider call failed.
        """
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[m.to_dict() for m in messages],
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except OpenAIError as e:
            logger.error(f"Chat completion failed ({self._model}): {e}")
            raise UpstreamUnavailableError("llm", str(e)) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
