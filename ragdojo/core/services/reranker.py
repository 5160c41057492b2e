"""LLM reranker - second relevance pass over a shortlist."""

import logging
import math
from dataclasses import replace

from ..models.chat import ChatMessage
from ..models.document import Candidate
from ..protocols.llm import LLMProtocol
from ..strategies.scoring import rank_key

logger = logging.getLogger(__name__)

RERANK_SYSTEM_PROMPT = "You are a reranking model. You only output scores as instructed."


def build_rerank_prompt(query: str, candidates: list[Candidate]) -> str:
    lines = [
        "Score the relevance of each candidate to the query on a 0-1 scale.",
        "Return exactly one line per candidate in the format: <id>|<score>",
        "Only output these lines, no extra text.",
        f"Query: {query}",
        "Candidates:",
    ]
    lines.extend(f"- {c.id}: {c.text}" for c in candidates)
    return "\n".join(lines)


def parse_scores(response_text: str) -> dict[str, float]:
    """Parse ``<id>|<score>`` lines; anything else is skipped.

    Ids are lowercased, scores clamped to [0, 1].
    """
    scores: dict[str, float] = {}
    for raw_line in response_text.splitlines():
        line = raw_line.strip()
        if "|" not in line:
            continue

        candidate_id, raw_score = (part.strip() for part in line.split("|", 1))
        if candidate_id.startswith("- "):
            candidate_id = candidate_id[2:].strip()
        if not candidate_id:
            continue

        try:
            score = float(raw_score)
        except ValueError:
            continue
        if math.isnan(score) or math.isinf(score):
            continue

        scores[candidate_id.lower()] = min(1.0, max(0.0, score))
    return scores


class LLMReranker:
    """Reranker that asks the generation model for one score per candidate."""

    def __init__(self, llm: LLMProtocol):
        self._llm = llm

    async def rerank(
        self,
        query: str,
        candidates: list[Candidate],
        top_k: int,
    ) -> list[Candidate]:
        """Rerank results by LLM judgement.

        Candidates the model did not score keep their previous score. On
        failure or an unusable response the input order is kept.

        Args:
            query: User query.
            candidates: Ranked shortlist.
            top_k: Maximum number of results.

        Returns:
            At most ``top_k`` candidates sorted by score (descending).
        """
        if not candidates:
            return candidates

        messages = [
            ChatMessage(role="system", content=RERANK_SYSTEM_PROMPT),
            ChatMessage(role="user", content=build_rerank_prompt(query, candidates)),
        ]

        try:
            response = await self._llm.complete(messages)
        except Exception as e:
            logger.warning(f"Reranking failed. Falling back to original ordering. ({e})")
            return candidates[:top_k]

        score_map = parse_scores(response or "")
        if not score_map:
            logger.warning("Reranking returned no valid scores. Falling back to original ordering.")
            return candidates[:top_k]

        reranked = []
        for candidate in candidates:
            score = score_map.get(candidate.id.lower())
            if score is None:
                reranked.append(candidate)
            else:
                reranked.append(replace(candidate, combined_score=score))

        reranked.sort(key=rank_key)

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(f"{c.combined_score:.2f}" for c in reranked[:3])
            logger.debug(f"Reranker top-3 scores: [{top_scores}]")

        logger.info(
            f"Reranked {len(candidates)} candidates ({len(score_map)} scored), "
            f"keeping {min(top_k, len(reranked))}"
        )
        return reranked[:top_k]
