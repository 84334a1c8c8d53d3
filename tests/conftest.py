"""Pytest configuration and shared fixtures."""

import io
import zipfile
from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest

from sheetmapper.config import ExternalServiceConfig, HeuristicConfig
from sheetmapper.grid.models import Grid, GridCell
from sheetmapper.llm.base import LLMResponse


def build_grid(
    rows: list[list[Optional[str]]],
    base: int = 1,
    spans: Optional[dict[tuple[int, int], tuple[int, int]]] = None,
    labels: Optional[set[tuple[int, int]]] = None,
) -> Grid:
    """Build a grid from row lists.

    ``None`` entries are absent cells; ``spans`` maps an anchor position to
    ``(row_span, col_span)``; positions in ``labels`` get ``is_header=True``.
    """
    spans = spans or {}
    labels = labels or set()
    covered = set()
    for (row, col), (row_span, col_span) in spans.items():
        for r in range(row, row + row_span):
            for c in range(col, col + col_span):
                if (r, c) != (row, col):
                    covered.add((r, c))

    cells = []
    for i, values in enumerate(rows):
        for j, text in enumerate(values):
            position = (base + i, base + j)
            if position in covered:
                continue
            if text is None and position not in spans:
                continue
            row_span, col_span = spans.get(position, (1, 1))
            cells.append(
                GridCell(
                    row=position[0],
                    col=position[1],
                    text=text or "",
                    is_header=position in labels,
                    row_span=row_span,
                    col_span=col_span,
                )
            )
    return Grid(
        cells=tuple(cells),
        row_count=len(rows),
        col_count=max((len(values) for values in rows), default=0),
        base=base,
    )


@pytest.fixture
def grid_builder():
    """The ``build_grid`` helper."""
    return build_grid


@pytest.fixture
def heuristics() -> HeuristicConfig:
    return HeuristicConfig()


@pytest.fixture
def multi_header_grid() -> Grid:
    """A sheet with a metadata row, two group-header rows and a session row."""
    return build_grid(
        [
            ["Class Name : A-12"],
            [None, None, "4. Program", None, None, None],
            [None, None, "Expert Talk", None, "Consulting", None],
            ["No.", "성명", "1회", "2회", "1회", "2회"],
            ["1", "홍길동", "O", None, "O", "O"],
            ["2", "김철수", None, "O", None, "O"],
        ],
        spans={(2, 3): (1, 4), (3, 3): (1, 2), (3, 5): (1, 2)},
    )


@pytest.fixture
def personnel_sheet_grid() -> Grid:
    """A flat personnel sheet: one header row, two data rows."""
    return build_grid(
        [
            ["No.", "성명", "연락처", "이메일 계정", "생년월일", "주소", "희망 직종"],
            ["1", "홍길동", "010-1234-5678", "hong@example.com", "1990-01-01", "Seoul", "개발"],
            ["2", "김영희", "010-2222-3333", "kim@example.com", "1992-02-02", "Busan", "디자인"],
        ]
    )


@pytest.fixture
def personnel_template() -> Grid:
    """A small personnel-card table (0-based) with labels beside and above data cells."""
    return build_grid(
        [
            ["개인이력카드", None, None, None],
            ["1. 신상정보", None, None, None],
            ["성명", "", "생년월일", ""],
            ["연락처", "", "이메일", ""],
            ["거주지", "", None, None],
            ["희망직종", "희망직무", "국가", "직무"],
            ["", "", "", ""],
        ],
        base=0,
        spans={(0, 0): (1, 4), (1, 0): (1, 4), (4, 1): (1, 3)},
        labels={
            (0, 0), (1, 0),
            (2, 0), (2, 2),
            (3, 0), (3, 2),
            (4, 0),
            (5, 0), (5, 1), (5, 2), (5, 3),
        },
    )


@pytest.fixture
def configured_service() -> ExternalServiceConfig:
    return ExternalServiceConfig(provider="anthropic", api_key="test-key", timeout_seconds=5)


def make_reply(text: str, usage: Optional[dict] = None) -> LLMResponse:
    return LLMResponse(
        content=[{"type": "text", "text": text}],
        stop_reason="end_turn",
        usage=usage or {"input_tokens": 10, "output_tokens": 5},
    )


@pytest.fixture
def mock_llm_client():
    """An LLM client whose replies are set per test via ``reply(text)``."""
    client = Mock()
    client.create_message = AsyncMock(return_value=make_reply('{"matches": []}'))

    def reply(text: str):
        client.create_message.return_value = make_reply(text)

    client.reply = reply
    return client


HWPX_NAMESPACES = (
    'xmlns:hs="http://www.hancom.co.kr/hwpml/2011/section" '
    'xmlns:hp="http://www.hancom.co.kr/hwpml/2011/paragraph"'
)


def hwpx_cell(text: str, row: int, col: int, border_fill: int = 10, col_span: int = 1, row_span: int = 1) -> str:
    return (
        f'<hp:tc borderFillIDRef="{border_fill}">'
        f"<hp:subList><hp:p><hp:run><hp:t>{text}</hp:t></hp:run></hp:p></hp:subList>"
        f'<hp:cellAddr colAddr="{col}" rowAddr="{row}"/>'
        f'<hp:cellSpan colSpan="{col_span}" rowSpan="{row_span}"/>'
        f"</hp:tc>"
    )


def build_hwpx(tables: list[tuple[int, int, list[list[str]]]]) -> bytes:
    """Zip a single-section HWPX document; each table is ``(rows, cols, [[tc xml]])``."""
    body = ""
    for row_count, col_count, rows in tables:
        trs = "".join(f"<hp:tr>{''.join(cells)}</hp:tr>" for cells in rows)
        body += (
            f'<hp:p><hp:run><hp:tbl rowCnt="{row_count}" colCnt="{col_count}">'
            f"{trs}</hp:tbl></hp:run></hp:p>"
        )
    section = f'<?xml version="1.0" encoding="UTF-8"?><hs:sec {HWPX_NAMESPACES}>{body}</hs:sec>'

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("mimetype", "application/hwp+zip")
        archive.writestr("Contents/section0.xml", section.encode("utf-8"))
    return buffer.getvalue()


@pytest.fixture
def personnel_hwpx() -> bytes:
    """HWPX version of a compact personnel card: title, two label/data rows."""
    return build_hwpx(
        [
            (
                3,
                2,
                [
                    [hwpx_cell("개인이력카드", 0, 0, border_fill=8, col_span=2)],
                    [hwpx_cell("성명", 1, 0, border_fill=9), hwpx_cell("", 1, 1)],
                    [hwpx_cell("연락처", 2, 0, border_fill=9), hwpx_cell("", 2, 1)],
                ],
            )
        ]
    )


@pytest.fixture
def hwpx_builder():
    """``(build_hwpx, hwpx_cell)`` helpers for archives built inside a test."""
    return build_hwpx, hwpx_cell


@pytest.fixture
def reply_factory():
    """The ``make_reply`` helper."""
    return make_reply
