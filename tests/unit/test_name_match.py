# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for name match scoring."""

import pytest

from nemis_bridge.domains.learner.name_match import (
    MATCH_THRESHOLD,
    NameScore,
    is_match,
    mismatches,
    rank_candidates,
    score_name,
    tokenize,
)


class TestTokenize:
    """Tests for tokenize."""

    def test_lowercases_and_strips_commas(self) -> None:
        assert tokenize("OTIENO, John  Kamau") == ["otieno", "john", "kamau"]

    def test_empty(self) -> None:
        assert tokenize(None) == []
        assert tokenize("  ") == []


class TestMismatches:
    """Tests for the per-token alignment."""

    def test_identical(self) -> None:
        assert mismatches("kamau", "kamau") == 0

    def test_single_deletion_is_tolerated(self) -> None:
        """Test a dropped letter still aligns within one position."""
        assert mismatches("oteno", "otieno") == 0

    def test_spelling_divergence(self) -> None:
        assert mismatches("jane", "john") == 2

    def test_length_gap_mismatches_everything(self) -> None:
        assert mismatches("jo", "johnson") == 2


class TestScoreName:
    """Tests for score_name."""

    def test_identical_names(self) -> None:
        score = score_name("JOHN KAMAU OTIENO", "john kamau otieno")

        assert score == NameScore(confidence=1.0, recognized_tokens=3, token_deltas=[0, 0, 0])

    def test_reordered_names_match(self) -> None:
        """Test swapped surname and given names are the same person."""
        score = score_name("JOHN KAMAU OTIENO", "KAMAU JOHN OTIENO")

        assert score.confidence == 1.0
        assert score.recognized_tokens == 3
        assert is_match(score)

    def test_one_divergent_token(self) -> None:
        """Test a different given name lowers confidence below the threshold."""
        score = score_name("JOHN KAMAU OTIENO", "JANE KAMAU OTIENO")

        assert score.token_deltas == [2, 0, 0]
        assert score.recognized_tokens == 2
        assert score.confidence == pytest.approx(0.833333, abs=1e-6)
        assert score.confidence < MATCH_THRESHOLD
        assert not is_match(score)

    def test_misspelling_within_tolerance(self) -> None:
        score = score_name("JOHN KAMAU OTIENO", "JOHN KAMAU OTENO")

        assert score.confidence == 1.0
        assert score.recognized_tokens == 2
        assert is_match(score)

    def test_commas_are_ignored(self) -> None:
        assert score_name("OTIENO, JOHN KAMAU", "OTIENO JOHN KAMAU").confidence == 1.0

    def test_empty_names_score_zero(self) -> None:
        assert score_name("", "JOHN KAMAU") == NameScore(confidence=0.0, recognized_tokens=0)
        assert score_name("JOHN KAMAU", None).confidence == 0.0

    def test_unrelated_names(self) -> None:
        score = score_name("JOHN KAMAU OTIENO", "WANJIKU MARY ACHIENG")

        assert score.recognized_tokens == 0
        assert not is_match(score)

    def test_confidence_never_exceeds_one(self) -> None:
        score = score_name("JOHN KAMAU", "JOHN JOHN KAMAU KAMAU")

        assert score.confidence <= 1.0


class TestIsMatch:
    """Tests for is_match."""

    def test_single_token_is_never_enough(self) -> None:
        """Test a lone matching token is not proof of identity."""
        score = score_name("KAMAU", "KAMAU")

        assert score.confidence == 1.0
        assert not is_match(score)

    def test_threshold(self) -> None:
        assert is_match(NameScore(confidence=0.9, recognized_tokens=2))
        assert not is_match(NameScore(confidence=0.89, recognized_tokens=3))


class TestRankCandidates:
    """Tests for rank_candidates."""

    def test_best_first(self) -> None:
        ranked = rank_candidates(
            "42",
            "JOHN KAMAU OTIENO",
            [
                ("WANJIKU MARY ACHIENG", "UPI-1"),
                ("KAMAU JOHN OTIENO", "UPI-2"),
                ("JANE KAMAU OTIENO", "UPI-3"),
            ],
        )

        assert [c.remote_upi for c in ranked] == ["UPI-2", "UPI-3", "UPI-1"]
        assert ranked[0].learner_id == "42"
        assert ranked[0].confidence == 1.0
        assert ranked[1].token_deltas == [2, 0, 0]

    def test_no_candidates(self) -> None:
        assert rank_candidates("42", "JOHN KAMAU", []) == []
