"""Scoring, fusion and pruning strategies."""
from .scoring import (
    FusionStrategy,
    HybridFusion,
    MultiVectorFusion,
    VectorFusion,
    cosine_similarity,
    lexical_score,
    rank_candidates,
    select_fusion,
    tokenize,
)
from .pruning import (
    ApproximatePruner,
    CandidateSource,
    ExhaustivePruner,
    InMemoryCorpusSource,
    Pruner,
    stable_hash,
)

__all__ = [
    "FusionStrategy",
    "HybridFusion",
    "MultiVectorFusion",
    "VectorFusion",
    "cosine_similarity",
    "lexical_score",
    "rank_candidates",
    "select_fusion",
    "tokenize",
    "ApproximatePruner",
    "CandidateSource",
    "ExhaustivePruner",
    "InMemoryCorpusSource",
    "Pruner",
    "stable_hash",
]
