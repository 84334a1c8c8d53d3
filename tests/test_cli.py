"""Tests for the command-line interface."""

import json

import pytest
from openpyxl import Workbook

from sheetmapper.cli import build_parser, main


@pytest.fixture
def sheet_path(tmp_path):
    wb = Workbook()
    ws = wb.active
    ws.title = "Roster"
    ws.append(["No.", "성명", "연락처"])
    ws.append(["1", "홍길동", "010-1234-5678"])
    path = tmp_path / "roster.xlsx"
    wb.save(path)
    return path


@pytest.fixture
def template_path(tmp_path, personnel_hwpx):
    path = tmp_path / "card.hwpx"
    path.write_bytes(personnel_hwpx)
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_map_arguments(self):
        args = build_parser().parse_args(["map", "a.xlsx", "b.hwpx", "--table", "2", "--no-external"])
        assert args.command == "map"
        assert args.table == 2
        assert args.no_external is True
        assert args.sheet is None


class TestMain:
    """Tests for main()."""

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        assert "headers" in capsys.readouterr().out

    def test_headers_command(self, sheet_path, capsys):
        main(["headers", str(sheet_path)])

        output = json.loads(capsys.readouterr().out)
        assert output["header_rows"] == [1]
        assert output["data_start_row"] == 2
        assert [c["name"] for c in output["columns"]] == ["No.", "성명", "연락처"]

    def test_map_command(self, sheet_path, template_path, capsys):
        main(["map", str(sheet_path), str(template_path), "--no-external"])

        output = json.loads(capsys.readouterr().out)
        targets = {m["source_column"]: (m["target_row"], m["target_col"]) for m in output["mappings"]}
        assert targets == {"성명": (1, 1), "연락처": (2, 1)}
        assert output["candidate_counts"]["external_a"] == 0
        assert "validation" in output

    def test_map_with_context_file(self, sheet_path, template_path, tmp_path, capsys):
        context_path = tmp_path / "context.json"
        context_path.write_text(
            json.dumps({"description": "roster", "synonyms": {"연락처": ["핸드폰"]}}, ensure_ascii=False),
            encoding="utf-8",
        )
        main(["map", str(sheet_path), str(template_path), "--no-external", "--context", str(context_path)])

        output = json.loads(capsys.readouterr().out)
        assert len(output["mappings"]) == 2

    def test_invalid_context_file(self, sheet_path, template_path, tmp_path, capsys):
        context_path = tmp_path / "context.json"
        context_path.write_text('{"field_relations": "nope"}', encoding="utf-8")

        with pytest.raises(SystemExit) as exc_info:
            main(["map", str(sheet_path), str(template_path), "--no-external", "--context", str(context_path)])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            main(["headers", str(tmp_path / "missing.xlsx")])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err

    def test_missing_sheet(self, sheet_path, capsys):
        with pytest.raises(SystemExit):
            main(["headers", str(sheet_path), "--sheet", "Other"])
        assert "Sheet 'Other' not found" in capsys.readouterr().err

    def test_sheets_command(self, sheet_path, capsys):
        main(["sheets", str(sheet_path)])

        assert json.loads(capsys.readouterr().out) == {"sheets": ["Roster"]}
