"""Tests for the spatial rule matcher."""

import pytest

from sheetmapper.config import HeuristicConfig, OverrideRule
from sheetmapper.mapping import (
    CandidateOrigin,
    SpatialRuleMatcher,
    apply_overrides,
    is_section_or_title,
    label_cells,
    locate_data_cell,
    match_labels,
)


class TestLabelCells:
    """Tests for label detection in template grids."""

    def test_section_and_title_detection(self):
        assert is_section_or_title("1. 신상정보")
        assert is_section_or_title("개인이력카드")
        assert is_section_or_title("This heading is clearly longer than twenty")
        assert not is_section_or_title("someone.long.address@example.com")
        assert not is_section_or_title("010 - 1234 - 5678 - 0000 - 11")
        assert not is_section_or_title("성명")

    def test_label_cells_exclude_titles_and_blanks(self, personnel_template):
        texts = [cell.text for cell in label_cells(personnel_template)]
        assert texts == [
            "성명", "생년월일", "연락처", "이메일", "거주지",
            "희망직종", "희망직무", "국가", "직무",
        ]

    def test_short_unstyled_text_counts_as_label(self, grid_builder):
        grid = grid_builder([["Dept", ""]], base=0)
        assert [cell.text for cell in label_cells(grid)] == ["Dept"]


class TestLocateDataCell:
    """Tests for locate_data_cell."""

    def test_right_of_label(self, personnel_template):
        label = personnel_template.cell_at(2, 0)
        cell = locate_data_cell(personnel_template, label)
        assert (cell.row, cell.col) == (2, 1)

    def test_right_scan_starts_past_column_span(self, grid_builder):
        grid = grid_builder(
            [["Wide label", None, "", ""]],
            base=0,
            spans={(0, 0): (1, 2)},
            labels={(0, 0)},
        )
        cell = locate_data_cell(grid, grid.cell_at(0, 0))
        assert (cell.row, cell.col) == (0, 2)

    def test_right_scan_skips_other_labels(self, grid_builder):
        grid = grid_builder([["성명", "구분", ""]], base=0, labels={(0, 0), (0, 1)})
        cell = locate_data_cell(grid, grid.cell_at(0, 0))
        assert (cell.row, cell.col) == (0, 2)

    def test_falls_back_to_cell_below(self, personnel_template):
        label = personnel_template.cell_at(5, 1)
        cell = locate_data_cell(personnel_template, label)
        assert (cell.row, cell.col) == (6, 1)

    def test_below_scan_limited(self, grid_builder):
        grid = grid_builder(
            [["성명"], ["구분"], ["구분"], ["구분"], [""]],
            base=0,
            labels={(0, 0), (1, 0), (2, 0), (3, 0)},
        )
        assert locate_data_cell(grid, grid.cell_at(0, 0)) is None

    def test_below_scan_starts_past_row_span(self, grid_builder):
        grid = grid_builder(
            [["Tall", "x"], [None, "y"], ["", "z"]],
            base=0,
            spans={(0, 0): (2, 1)},
            labels={(0, 0), (0, 1), (1, 1), (2, 1)},
        )
        cell = locate_data_cell(grid, grid.cell_at(0, 0))
        assert (cell.row, cell.col) == (2, 0)


class TestGreedyPasses:
    """Tests for the pure greedy passes."""

    def test_override_stops_at_first_matching_rule(self):
        rules = [
            OverrideRule(pattern="2분기[_\\s]*취업여부", target_row=18, target_col=2, label="2분기 취업여부"),
            OverrideRule(pattern="취업여부", target_row=30, target_col=1, label="취업여부"),
        ]
        taken = frozenset({(18, 2)})
        candidates, used_columns, used_cells = apply_overrides(
            ["5. 취업현황_2분기_취업여부"], rules, 0.98, used_cells=taken
        )
        # first matching rule's cell is taken and the column does not fall through
        assert candidates == []
        assert used_columns == frozenset()
        assert used_cells == taken

    def test_override_candidate(self, heuristics):
        candidates, used_columns, used_cells = apply_overrides(
            ["4. 프로그램 참여현황_전문가 컨설팅_3회"],
            heuristics.override_rules,
            heuristics.override_confidence,
        )
        assert len(candidates) == 1
        assert candidates[0].target == (14, 5)
        assert candidates[0].confidence == pytest.approx(0.98)
        assert used_columns == {"4. 프로그램 참여현황_전문가 컨설팅_3회"}
        assert used_cells == {(14, 5)}

    def test_inputs_are_not_mutated(self, personnel_template):
        used_columns = frozenset({"연락처"})
        used_cells = frozenset()
        labels = label_cells(personnel_template)

        candidates, new_columns, new_cells = match_labels(
            personnel_template, ["성명", "연락처"], labels,
            used_columns=used_columns, used_cells=used_cells,
        )

        assert [c.source_column for c in candidates] == ["성명"]
        assert used_columns == {"연락처"}
        assert used_cells == frozenset()
        assert new_columns == {"연락처", "성명"}
        assert new_cells == {(2, 1)}

    def test_exact_and_partial_confidence(self, personnel_template):
        labels = label_cells(personnel_template)
        candidates, _, _ = match_labels(personnel_template, ["성명", "이메일 계정"], labels)

        by_column = {c.source_column: c for c in candidates}
        assert by_column["성명"].confidence == pytest.approx(0.95)
        assert by_column["이메일 계정"].confidence == pytest.approx(0.85)
        assert by_column["이메일 계정"].target == (3, 3)
        assert by_column["이메일 계정"].label_text == "이메일"

    def test_single_character_column_skipped(self, personnel_template):
        labels = label_cells(personnel_template)
        candidates, _, _ = match_labels(personnel_template, ["성"], labels)
        assert candidates == []

    def test_taken_cell_moves_to_next_label(self, grid_builder):
        grid = grid_builder(
            [["연락처", ""], ["연락처 (2)", ""]],
            base=0,
            labels={(0, 0), (1, 0)},
        )
        labels = label_cells(grid)
        candidates, _, _ = match_labels(
            grid, ["연락처"], labels, used_cells=frozenset({(0, 1)})
        )
        assert candidates[0].target == (1, 1)


class TestSpatialRuleMatcher:
    """Tests for SpatialRuleMatcher.generate."""

    @pytest.mark.asyncio
    async def test_personnel_candidates(self, personnel_template):
        columns = ["No.", "성명", "연락처", "이메일 계정", "생년월일", "주소", "희망 직종"]
        candidates = await SpatialRuleMatcher().generate(personnel_template, columns)

        targets = {c.source_column: c.target for c in candidates}
        assert targets == {
            "성명": (2, 1),
            "연락처": (3, 1),
            "이메일 계정": (3, 3),
            "생년월일": (2, 3),
            "희망 직종": (6, 0),
        }
        assert all(c.origin == CandidateOrigin.RULE for c in candidates)

    @pytest.mark.asyncio
    async def test_targets_and_columns_unique(self, personnel_template):
        columns = ["성명", "이름", "성명 (한글)", "연락처", "연락처2"]
        candidates = await SpatialRuleMatcher().generate(personnel_template, columns)

        targets = [c.target for c in candidates]
        sources = [c.source_column for c in candidates]
        assert len(targets) == len(set(targets))
        assert len(sources) == len(set(sources))

    @pytest.mark.asyncio
    async def test_overrides_run_before_labels(self, grid_builder):
        config = HeuristicConfig(
            override_rules=[OverrideRule(pattern="^성명$", target_row=1, target_col=1, label="name")]
        )
        grid = grid_builder([["성명", ""], ["", ""]], base=0, labels={(0, 0)})
        candidates = await SpatialRuleMatcher(config).generate(grid, ["성명"])

        assert len(candidates) == 1
        assert candidates[0].target == (1, 1)
        assert candidates[0].confidence == pytest.approx(0.98)
