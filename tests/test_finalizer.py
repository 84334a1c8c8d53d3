"""Tests for mapping finalization."""

from sheetmapper.mapping import CandidateOrigin, MappingCandidate, finalize


def candidate(column, row, col, confidence):
    return MappingCandidate(
        source_column=column,
        target_row=row,
        target_col=col,
        confidence=confidence,
        origin=CandidateOrigin.RULE,
    )


class TestFinalize:
    """Tests for finalize."""

    def test_higher_confidence_claims_cell_first(self, personnel_template):
        mappings, issues = finalize(
            [candidate("이름", 2, 1, 0.7), candidate("성명", 2, 1, 0.95)],
            personnel_template,
        )
        assert [(m.source_column, m.target) for m in mappings] == [("성명", (2, 1))]
        assert len(issues) == 1
        assert "already claimed" in issues[0]
        assert "이름" in issues[0]

    def test_duplicate_column_rejected(self, personnel_template):
        mappings, issues = finalize(
            [candidate("성명", 2, 1, 0.95), candidate("성명", 3, 1, 0.9)],
            personnel_template,
        )
        assert len(mappings) == 1
        assert "already mapped" in issues[0]

    def test_out_of_range_rejected(self, personnel_template):
        mappings, issues = finalize(
            [candidate("a", 7, 0, 0.9), candidate("b", 0, 4, 0.9), candidate("c", -1, 0, 0.9)],
            personnel_template,
        )
        assert mappings == []
        assert issues[0].startswith("Row 7 out of range")
        assert issues[1].startswith("Column index 4 out of range")
        assert issues[2].startswith("Row -1 out of range")

    def test_bounds_follow_template_base(self, grid_builder):
        template = grid_builder([["a", "b"], ["c", "d"]], base=1)
        mappings, issues = finalize(
            [candidate("x", 0, 1, 0.9), candidate("y", 1, 0, 0.9), candidate("z", 2, 2, 0.9)],
            template,
        )
        assert [(m.source_column, m.target) for m in mappings] == [("z", (2, 2))]
        assert issues[0].startswith("Row 0 out of range")
        assert issues[1].startswith("Column index 0 out of range")

    def test_confidence_floor(self, personnel_template):
        mappings, issues = finalize(
            [candidate("a", 2, 1, 0.5), candidate("b", 3, 1, 0.49)],
            personnel_template,
        )
        assert [m.source_column for m in mappings] == ["a"]
        assert "Low confidence (0.49)" in issues[0]

    def test_custom_floor(self, personnel_template):
        mappings, _ = finalize([candidate("a", 2, 1, 0.6)], personnel_template, confidence_floor=0.8)
        assert mappings == []

    def test_stable_order_for_equal_confidence(self, personnel_template):
        mappings, _ = finalize(
            [candidate("a", 2, 1, 0.9), candidate("b", 3, 1, 0.9), candidate("c", 2, 3, 0.9)],
            personnel_template,
        )
        assert [m.source_column for m in mappings] == ["a", "b", "c"]

    def test_final_mapping_is_injective(self, personnel_template):
        candidates = [
            candidate("a", 2, 1, 0.9),
            candidate("b", 2, 1, 0.8),
            candidate("a", 3, 1, 0.85),
            candidate("c", 3, 1, 0.7),
            candidate("d", 6, 0, 0.6),
        ]
        mappings, _ = finalize(candidates, personnel_template)
        targets = [m.target for m in mappings]
        columns = [m.source_column for m in mappings]
        assert len(targets) == len(set(targets))
        assert len(columns) == len(set(columns))
        assert [(m.source_column, m.target) for m in mappings] == [
            ("a", (2, 1)),
            ("c", (3, 1)),
            ("d", (6, 0)),
        ]
