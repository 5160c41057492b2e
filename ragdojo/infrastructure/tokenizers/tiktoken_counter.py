import logging
from functools import cached_property

import tiktoken

logger = logging.getLogger(__name__)

FALLBACK_ENCODING = "cl100k_base"


class TiktokenCounter:
    """Prompt token counting with tiktoken."""

    def __init__(self, model: str = "gpt-4o"):
        self._model = model

    @cached_property
    def encoding(self) -> tiktoken.Encoding:
        try:
            return tiktoken.encoding_for_model(self._model)
        except KeyError:
            logger.debug(f"No tiktoken encoding for {self._model}, using {FALLBACK_ENCODING}")
            return tiktoken.get_encoding(FALLBACK_ENCODING)

    def count(self, text: str) -> int:
        if not text:
            return 0
        return len(self.encoding.encode(text))
