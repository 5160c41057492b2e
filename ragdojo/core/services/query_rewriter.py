"""Query rewriting - expansion and hypothetical documents (HyDE)."""

import logging

from ..models.chat import ChatMessage
from ..protocols.llm import LLMProtocol

logger = logging.getLogger(__name__)

MAX_EXPANSION_WORDS = 15

EXPANSION_PROMPT = """You expand search queries in the domain of {domain}.
Extend the user's query with synonyms and related terms.

Rules:
1. Keep the original search terms
2. Add synonyms and technical terms
3. Add related concepts
4. Reply ONLY with the expanded query, no explanations
5. Separate terms with spaces, single line
6. At most 15 words in total

Examples:
- 'coffee foam' → 'coffee foam crema espresso milk froth'
- 'hot drink' → 'hot drink coffee espresso cappuccino warm temperature'"""

HYDE_PROMPT = (
    "You write a hypothetical document (HyDE) for a search in the domain of {domain}. "
    "Write 2-4 sentences that form a plausible answer or a relevant document excerpt. "
    "No lists, no explanations, only running text. At most 80 words."
)


class QueryRewriter:
    """Optional LLM rewrites of the query; failures fall back to the input."""

    def __init__(self, llm: LLMProtocol, domain: str = "coffee and coffee preparation"):
        """Initialize rewriter.

        Args:
            llm: Generation gateway.
            domain: Subject area named in the prompts.
        """
        self._llm = llm
        self._domain = domain

    async def expand(self, query: str) -> str:
        """Append synonyms and related terms to the query.

        Returns the original query unchanged when the provider fails or
        answers with nothing usable.
        """
        logger.info(f"Expanding query: {query}")
        messages = [
            ChatMessage(role="system", content=EXPANSION_PROMPT.format(domain=self._domain)),
            ChatMessage(role="user", content=query),
        ]

        try:
            response = await self._llm.complete(messages)
        except Exception as e:
            logger.warning(f"Failed to expand query, using original: {query} ({e})")
            return query

        expanded = self._normalize_expansion(query, response)
        logger.info(f"Expanded query: {query} → {expanded}")
        return expanded

    @staticmethod
    def _normalize_expansion(query: str, response: str | None) -> str:
        lines = [line.strip() for line in (response or "").splitlines() if line.strip()]
        if not lines:
            return query

        extra = lines[0].strip("'\"").split()
        original = query.split()
        original_lower = {w.lower() for w in original}

        # Original terms stay first; the model's words are only appended.
        words = original + [w for w in extra if w.lower() not in original_lower]

        limit = max(MAX_EXPANSION_WORDS, len(original))
        return " ".join(words[:limit])

    async def hypothetical_document(self, query: str) -> str:
        """Generate a short plausible passage to embed instead of the query.

        Falls back to the query itself on any provider failure.
        """
        logger.info(f"Generating HyDE document for query: {query}")
        messages = [
            ChatMessage(role="system", content=HYDE_PROMPT.format(domain=self._domain)),
            ChatMessage(role="user", content=query),
        ]

        try:
            response = await self._llm.complete(messages)
        except Exception as e:
            logger.warning(f"HyDE generation failed, using original query: {query} ({e})")
            return query

        hypothetical = (response or "").strip()
        return hypothetical or query
