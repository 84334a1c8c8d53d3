"""Tests for candidate merging."""

import pytest

from sheetmapper.mapping import CandidateOrigin, MappingCandidate, merge_candidates


def candidate(column, row, col, confidence, origin=CandidateOrigin.RULE):
    return MappingCandidate(
        source_column=column,
        target_row=row,
        target_col=col,
        confidence=confidence,
        origin=origin,
        reason=f"{origin.value} guess",
    )


class TestMergeCandidates:
    """Tests for merge_candidates."""

    def test_single_candidate_unchanged(self):
        only = candidate("성명", 2, 1, 0.95)
        assert merge_candidates([only]) == [only]

    def test_agreement_boosts_confidence(self):
        merged = merge_candidates(
            [
                candidate("성명", 2, 1, 0.85),
                candidate("성명", 2, 1, 0.7, CandidateOrigin.EXTERNAL_A),
            ]
        )
        assert len(merged) == 1
        assert merged[0].confidence == pytest.approx(0.95)
        assert merged[0].origin == CandidateOrigin.RULE
        assert merged[0].reason.startswith("2 sources agree")

    def test_boost_capped_at_one(self):
        merged = merge_candidates(
            [
                candidate("성명", 2, 1, 0.98),
                candidate("성명", 2, 1, 0.9, CandidateOrigin.EXTERNAL_A),
                candidate("성명", 2, 1, 0.9, CandidateOrigin.EXTERNAL_B),
            ]
        )
        assert merged[0].confidence == 1.0

    def test_majority_beats_single_high_confidence(self):
        merged = merge_candidates(
            [
                candidate("연락처", 2, 1, 0.95),
                candidate("연락처", 3, 1, 0.7, CandidateOrigin.EXTERNAL_A),
                candidate("연락처", 3, 1, 0.6, CandidateOrigin.EXTERNAL_B),
            ]
        )
        assert merged[0].target == (3, 1)
        assert merged[0].origin == CandidateOrigin.EXTERNAL_A
        assert merged[0].confidence == pytest.approx(0.8)

    def test_vote_tie_broken_by_confidence_sum(self):
        merged = merge_candidates(
            [
                candidate("연락처", 2, 1, 0.8),
                candidate("연락처", 3, 1, 0.9, CandidateOrigin.EXTERNAL_A),
            ]
        )
        assert merged[0].target == (3, 1)
        assert merged[0].confidence == pytest.approx(0.9)

    def test_full_tie_keeps_first_seen_cell(self):
        merged = merge_candidates(
            [
                candidate("연락처", 2, 1, 0.8),
                candidate("연락처", 3, 1, 0.8, CandidateOrigin.EXTERNAL_A),
            ]
        )
        assert merged[0].target == (2, 1)

    def test_one_result_per_column_in_first_seen_order(self):
        merged = merge_candidates(
            [
                candidate("b", 1, 1, 0.9),
                candidate("a", 2, 2, 0.9),
                candidate("b", 1, 1, 0.6, CandidateOrigin.EXTERNAL_B),
            ]
        )
        assert [c.source_column for c in merged] == ["b", "a"]

    def test_inputs_not_modified(self):
        first = candidate("성명", 2, 1, 0.85)
        second = candidate("성명", 2, 1, 0.7, CandidateOrigin.EXTERNAL_A)
        merge_candidates([first, second])
        assert first.confidence == pytest.approx(0.85)
        assert first.reason == "rule guess"
