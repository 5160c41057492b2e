"""Tests for vector/lexical scoring, fusion and ranking."""

import pytest

from ragdojo.core.models.document import Candidate
from ragdojo.core.models.search import SearchEnhancements
from ragdojo.core.strategies.scoring import (
    HybridFusion,
    MultiVectorFusion,
    VectorFusion,
    cosine_similarity,
    keyword_matches,
    lexical_score,
    rank_candidates,
    select_fusion,
    tokenize,
)


def _candidate(cid, text="", vector=0.0, combined=None, **kwargs) -> Candidate:
    if combined is None:
        combined = vector
    return Candidate(
        id=cid, text=text, source_label="test",
        vector_score=vector, combined_score=combined, **kwargs,
    )


class TestCosineSimilarity:

    def test_identical_vectors_score_exactly_one(self):
        v = [0.3, -1.7, 2.2, 0.0001]
        assert cosine_similarity(v, v) == 1.0

    def test_orthogonal_vectors_score_zero(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite_vectors_score_minus_one(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_dimension_mismatch_is_zero(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_zero_vector_is_zero(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0

    def test_symmetric(self):
        a, b = [0.2, 0.9, -0.4], [1.5, 0.1, 0.3]
        assert cosine_similarity(a, b) == cosine_similarity(b, a)


class TestLexicalScoring:

    def test_tokenize_drops_short_tokens_and_punctuation(self):
        assert tokenize("A cup, of Espresso!") == {"cup", "of", "espresso"}

    def test_exact_body_match(self):
        match = lexical_score("espresso crema", "Espresso with thick crema.")

        assert match.score == 1.0
        assert match.matched_terms == ["crema", "espresso"]

    def test_tag_match_counts_double(self):
        matches, terms = keyword_matches({"caffeine", "sleep"}, "Late coffee.", tags=["caffeine"])

        assert matches == 2
        assert terms == ["[tag:caffeine]"]

    def test_tag_match_is_capped_at_one(self):
        match = lexical_score("caffeine", "Late coffee.", tags=["caffeine"])
        assert match.score == 1.0

    def test_partial_prefix_match(self):
        match = lexical_score("grind", "Burr grinders are even.")

        assert match.score == 1.0
        assert match.matched_terms == ["~grinders"]

    def test_partial_credit_can_be_disabled(self):
        matches, terms = keyword_matches({"grind"}, "Burr grinders are even.", partial=False)
        assert (matches, terms) == (0, [])

    def test_query_without_tokens_scores_zero(self):
        assert lexical_score("? !", "anything").score == 0.0

    def test_half_of_query_matched(self):
        match = lexical_score("milk tea", "Steamed milk.")
        assert match.score == 0.5

    def test_adding_tag_match_never_decreases_score(self):
        without_tag = lexical_score("oat milk", "Steamed milk.")
        with_tag = lexical_score("oat milk", "Steamed milk.", tags=["oat"])

        assert with_tag.score >= without_tag.score
        assert "[tag:oat]" in with_tag.matched_terms


class TestFusion:

    def test_vector_fusion_copies_vector_score(self):
        fused = VectorFusion().apply("q", [_candidate("a", vector=0.42, combined=0.0)])
        assert fused[0].combined_score == 0.42

    def test_hybrid_fusion_weights_signals(self):
        candidate = _candidate("a", text="espresso shot", vector=0.5)
        fused = HybridFusion(0.7, 0.3).apply("espresso", [candidate])[0]

        assert fused.lexical_score == 1.0
        assert fused.combined_score == pytest.approx(0.5 * 0.7 + 1.0 * 0.3)
        assert fused.matched_terms == ["espresso"]

    def test_hybrid_pure_vector_signal_weighs_seven_tenths(self):
        candidate = _candidate("a", text="unrelated words", vector=1.0)
        fused = HybridFusion().apply("espresso", [candidate])[0]

        assert fused.combined_score == pytest.approx(0.7)

    def test_hybrid_fusion_does_not_mutate_input(self):
        candidate = _candidate("a", text="espresso", vector=0.5)
        HybridFusion().apply("espresso", [candidate])

        assert candidate.combined_score == 0.5
        assert candidate.matched_terms == []

    def test_multi_vector_missing_tag_counts_as_zero(self):
        with_tag = _candidate("a", vector=0.8, tag_vector_score=0.4)
        without_tag = _candidate("b", vector=0.8)
        fused = MultiVectorFusion(0.75, 0.25).apply("q", [with_tag, without_tag])

        assert fused[0].combined_score == pytest.approx(0.8 * 0.75 + 0.4 * 0.25)
        assert fused[1].combined_score == pytest.approx(0.8 * 0.75)

    def test_hybrid_wins_over_multi_vector(self):
        enhancements = SearchEnhancements(use_hybrid_search=True, use_multi_vector_search=True)
        assert isinstance(select_fusion(enhancements), HybridFusion)

    def test_multi_vector_selected(self):
        enhancements = SearchEnhancements(use_multi_vector_search=True)
        assert isinstance(select_fusion(enhancements), MultiVectorFusion)

    def test_default_is_vector(self):
        assert isinstance(select_fusion(SearchEnhancements()), VectorFusion)


class TestRanking:

    def test_sorted_descending_and_truncated(self):
        candidates = [_candidate(c, vector=s) for c, s in [("a", 0.6), ("b", 0.9), ("c", 0.7)]]
        ranked = rank_candidates(candidates, top_k=2)

        assert [c.id for c in ranked] == ["b", "c"]

    def test_ties_broken_by_id(self):
        candidates = [_candidate(c, vector=0.8) for c in ["d", "b", "c"]]
        assert [c.id for c in rank_candidates(candidates, top_k=3)] == ["b", "c", "d"]

    def test_threshold_on_fused_score(self):
        candidates = [
            _candidate("a", vector=0.9, combined=0.4),
            _candidate("b", vector=0.3, combined=0.6),
        ]
        ranked = rank_candidates(candidates, top_k=5, min_score=0.5)

        assert [c.id for c in ranked] == ["b"]

    def test_threshold_on_vector_score_without_post_filter(self):
        candidates = [
            _candidate("a", vector=0.9, combined=0.4),
            _candidate("b", vector=0.3, combined=0.6),
        ]
        ranked = rank_candidates(candidates, top_k=5, min_score=0.5, post_filter=False)

        assert [c.id for c in ranked] == ["a"]

    def test_high_threshold_returns_empty(self):
        candidates = [_candidate("a", vector=0.6), _candidate("b", vector=0.8)]
        assert rank_candidates(candidates, top_k=5, min_score=0.9) == []

    def test_results_round_score_to_four_decimals(self):
        result = _candidate("a", vector=0.123456789).to_result()
        assert result.score == 0.1235
