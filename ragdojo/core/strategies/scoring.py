import logging
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Sequence

import numpy as np

from ..models.document import Candidate
from ..models.search import SearchEnhancements

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"\W+")


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Mismatched dimensionality or a zero vector yields 0.0 instead of an
    error, so a provider/model mismatch never crashes a search.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape or va.ndim != 1:
        return 0.0

    norm_a = float(np.dot(va, va))
    norm_b = float(np.dot(vb, vb))
    denominator = math.sqrt(norm_a * norm_b)
    if denominator == 0.0:
        return 0.0

    return float(np.dot(va, vb)) / denominator


def tokenize(text: str) -> set[str]:
    """Lowercased word tokens of at least two characters."""
    return {t for t in _NON_WORD.split(text.lower()) if len(t) >= 2}


@dataclass
class LexicalMatch:
    score: float
    matched_terms: list[str] = field(default_factory=list)


def keyword_matches(
    query_tokens: set[str],
    text: str,
    tags: Sequence[str] = (),
    partial: bool = True,
) -> tuple[int, list[str]]:
    """Count keyword hits of a query against a candidate body and tags.

    Exact body hit scores 1, exact tag hit 2, and (when ``partial``) a
    prefix match in either direction scores 1 if nothing exact matched.

    Returns:
        Raw match count and the annotated matched terms.
    """
    body_tokens = tokenize(text)
    tag_tokens = {t.lower() for t in tags}
    ordered_body = sorted(body_tokens)

    matches = 0
    matched_terms: list[str] = []

    for token in sorted(query_tokens):
        if token in body_tokens:
            matches += 1
            matched_terms.append(token)
        elif token in tag_tokens:
            matches += 2
            matched_terms.append(f"[tag:{token}]")
        elif partial:
            prefix = next(
                (t for t in ordered_body if t.startswith(token) or token.startswith(t)),
                None,
            )
            if prefix is not None:
                matches += 1
                matched_terms.append(f"~{prefix}")

    return matches, matched_terms


def lexical_score(query: str | set[str], text: str, tags: Sequence[str] = ()) -> LexicalMatch:
    """Token-overlap score in [0, 1] with matched terms for explainability."""
    query_tokens = tokenize(query) if isinstance(query, str) else query
    if not query_tokens:
        return LexicalMatch(score=0.0)

    matches, matched_terms = keyword_matches(query_tokens, text, tags)
    score = min(1.0, matches / len(query_tokens))
    return LexicalMatch(score=score, matched_terms=matched_terms)


class FusionStrategy(ABC):
    """Base class for combining per-candidate signals into one score."""

    name: str = "vector"

    @abstractmethod
    def apply(self, query: str, candidates: list[Candidate]) -> list[Candidate]:
        """Return candidates with ``combined_score`` set."""
        ...


class VectorFusion(FusionStrategy):
    """Pure dense similarity."""

    name = "vector"

    def apply(self, query: str, candidates: list[Candidate]) -> list[Candidate]:
        return [replace(c, combined_score=c.vector_score) for c in candidates]


class HybridFusion(FusionStrategy):
    """Weighted sum of vector similarity and keyword overlap."""

    name = "hybrid"

    def __init__(self, vector_weight: float = 0.7, keyword_weight: float = 0.3):
        """Initialize strategy.

        Args:
            vector_weight: Weight of the cosine similarity.
            keyword_weight: Weight of the lexical score.
        """
        self._vector_weight = vector_weight
        self._keyword_weight = keyword_weight

    def apply(self, query: str, candidates: list[Candidate]) -> list[Candidate]:
        query_tokens = tokenize(query)
        fused = []

        for candidate in candidates:
            match = lexical_score(query_tokens, candidate.text, candidate.tags)
            combined = (
                candidate.vector_score * self._vector_weight
                + match.score * self._keyword_weight
            )
            fused.append(
                replace(
                    candidate,
                    lexical_score=match.score,
                    matched_terms=match.matched_terms,
                    combined_score=combined,
                )
            )

        if logger.isEnabledFor(logging.DEBUG):
            for c in fused:
                logger.debug(
                    f"hybrid {c.id}: vector={c.vector_score:.3f} "
                    f"lexical={c.lexical_score:.3f} terms={c.matched_terms}"
                )

        return fused


class MultiVectorFusion(FusionStrategy):
    """Weighted sum of content-vector and tag-vector similarity."""

    name = "multi_vector"

    def __init__(self, content_weight: float = 0.75, tag_weight: float = 0.25):
        self._content_weight = content_weight
        self._tag_weight = tag_weight

    def apply(self, query: str, candidates: list[Candidate]) -> list[Candidate]:
        return [
            replace(
                c,
                combined_score=c.vector_score * self._content_weight
                + (c.tag_vector_score or 0.0) * self._tag_weight,
            )
            for c in candidates
        ]


def select_fusion(
    enhancements: SearchEnhancements,
    vector_weight: float = 0.7,
    keyword_weight: float = 0.3,
    content_weight: float = 0.75,
    tag_weight: float = 0.25,
) -> FusionStrategy:
    """Pick the fusion strategy for a pipeline configuration.

    Hybrid wins over multi-vector when both are requested.
    """
    if enhancements.use_hybrid_search:
        return HybridFusion(vector_weight, keyword_weight)
    if enhancements.use_multi_vector_search:
        return MultiVectorFusion(content_weight, tag_weight)
    return VectorFusion()


def rank_key(candidate: Candidate) -> tuple[float, str]:
    """Descending score, then ascending id."""
    return (-candidate.combined_score, candidate.id)


def rank_candidates(
    candidates: list[Candidate],
    top_k: int,
    min_score: float = 0.0,
    post_filter: bool = True,
) -> list[Candidate]:
    """Threshold, sort and truncate fused candidates.

    Args:
        candidates: Candidates with ``combined_score`` set.
        top_k: Number of results to keep.
        min_score: Score threshold.
        post_filter: Apply the threshold to the fused score; otherwise
            only the raw vector score is checked.

    Returns:
        At most ``top_k`` candidates, best first.
    """
    if post_filter:
        kept = [c for c in candidates if c.combined_score >= min_score]
    else:
        kept = [c for c in candidates if c.vector_score >= min_score]

    if len(kept) < len(candidates):
        logger.info(
            f"Score threshold: {len(candidates)} → {len(kept)} (min={min_score:.2f})"
        )

    kept.sort(key=rank_key)
    return kept[:top_k]
