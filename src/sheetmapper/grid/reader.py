"""Readers that turn spreadsheet and template bytes into grids."""

import io
import logging
import re
import xml.etree.ElementTree as ET
import zipfile
from typing import Any, Iterator, Optional

from openpyxl import load_workbook
from openpyxl.cell.rich_text import CellRichText
from openpyxl.worksheet.formula import ArrayFormula

from ..config import HeuristicConfig
from .classify import border_fill_hint, classify_template_cell
from .models import (
    CellValue,
    FormulaResult,
    Grid,
    GridCell,
    PlainValue,
    RichText,
    SheetNotFoundError,
    SpreadsheetReadError,
    TemplateDocument,
    TemplateReadError,
    cell_value_to_text,
)

logger = logging.getLogger(__name__)

SECTION_FILE_PATTERN = re.compile(r"^Contents/section(\d+)\.xml$")


def to_cell_value(raw: Any, cached: Any = None) -> CellValue:
    """Wrap a raw openpyxl value in the matching cell value variant.

    ``cached`` is the value stored for the same cell by a data-only load,
    i.e. the last computed result of a formula.
    """
    if isinstance(raw, CellRichText):
        runs = [part if isinstance(part, str) else part.text for part in raw]
        return RichText(runs=runs)
    if isinstance(raw, ArrayFormula):
        return FormulaResult(formula=raw.text or "", result=cached)
    if isinstance(raw, str) and raw.startswith("="):
        return FormulaResult(formula=raw, result=cached)
    return PlainValue(value=raw)


def _merge_spans(ws) -> tuple[dict[tuple[int, int], tuple[int, int]], set[tuple[int, int]]]:
    """Return anchor → (row_span, col_span) and the set of covered positions."""
    anchors: dict[tuple[int, int], tuple[int, int]] = {}
    covered: set[tuple[int, int]] = set()
    for merged_range in ws.merged_cells.ranges:
        min_r, min_c = merged_range.min_row, merged_range.min_col
        max_r, max_c = merged_range.max_row, merged_range.max_col
        anchors[(min_r, min_c)] = (max_r - min_r + 1, max_c - min_c + 1)
        for r in range(min_r, max_r + 1):
            for c in range(min_c, max_c + 1):
                if (r, c) != (min_r, min_c):
                    covered.add((r, c))
    return anchors, covered


def _has_label_fill(cell) -> Optional[bool]:
    """Style hint for XLSX templates: a solid non-white fill marks a label."""
    fill = cell.fill
    if fill is None or not fill.patternType or fill.patternType == "none":
        return None
    rgb = getattr(fill.fgColor, "rgb", None)
    if isinstance(rgb, str) and len(rgb) >= 6:
        return rgb[-6:].upper() != "FFFFFF"
    return True


class SpreadsheetReader:
    """Reads one worksheet of an XLSX workbook into a 1-based grid."""

    def __init__(self, max_rows: Optional[int] = None):
        self.max_rows = max_rows

    def read(self, data: bytes, sheet_name: Optional[str] = None) -> Grid:
        """Decode workbook bytes and return the selected sheet as a grid.

        Raises:
            SpreadsheetReadError: If the bytes are not a readable workbook
            SheetNotFoundError: If ``sheet_name`` is given and missing
        """
        try:
            formulas_wb = load_workbook(io.BytesIO(data), data_only=False, rich_text=True)
            values_wb = load_workbook(io.BytesIO(data), data_only=True)
        except Exception as e:
            raise SpreadsheetReadError(f"Failed to read spreadsheet: {e}") from e

        if not formulas_wb.worksheets:
            raise SpreadsheetReadError("Workbook contains no worksheets")

        target = (sheet_name or "").strip() or formulas_wb.worksheets[0].title
        if target not in formulas_wb.sheetnames:
            raise SheetNotFoundError(target, list(formulas_wb.sheetnames))

        ws = formulas_wb[target]
        values_ws = values_wb[target]
        max_row = ws.max_row if self.max_rows is None else min(ws.max_row, self.max_rows)
        max_col = ws.max_column
        anchors, covered = _merge_spans(ws)

        cells: list[GridCell] = []
        for row in ws.iter_rows(min_row=1, max_row=max_row, max_col=max_col):
            for cell in row:
                position = (cell.row, cell.column)
                if position in covered:
                    continue
                value = to_cell_value(cell.value, values_ws.cell(*position).value)
                text = cell_value_to_text(value)
                row_span, col_span = anchors.get(position, (1, 1))
                if not text and position not in anchors:
                    continue
                cells.append(
                    GridCell(
                        row=cell.row,
                        col=cell.column,
                        text=text,
                        row_span=min(row_span, max_row - cell.row + 1),
                        col_span=col_span,
                    )
                )

        logger.info(
            f"Read sheet '{target}': {max_row} rows x {max_col} cols, "
            f"{len(cells)} cells, {len(anchors)} merged ranges"
        )
        return Grid(cells=cells, row_count=max_row, col_count=max_col, base=1)

    def sheet_names(self, data: bytes) -> list[str]:
        try:
            wb = load_workbook(io.BytesIO(data), read_only=True)
        except Exception as e:
            raise SpreadsheetReadError(f"Failed to read spreadsheet: {e}") from e
        return list(wb.sheetnames)


class XlsxTemplateReader:
    """Reads every worksheet of an XLSX template as a 0-based table."""

    def __init__(self, config: Optional[HeuristicConfig] = None):
        self.config = config or HeuristicConfig()

    def read(self, data: bytes, source_name: str = "template.xlsx") -> TemplateDocument:
        try:
            wb = load_workbook(io.BytesIO(data), data_only=True, rich_text=True)
        except Exception as e:
            raise TemplateReadError(f"Failed to read template '{source_name}': {e}") from e

        tables = [self._read_sheet(ws) for ws in wb.worksheets]
        return TemplateDocument(source_name=source_name, tables=tables)

    def _read_sheet(self, ws) -> Grid:
        anchors, covered = _merge_spans(ws)
        cells: list[GridCell] = []
        for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=ws.max_column):
            for cell in row:
                position = (cell.row, cell.column)
                if position in covered:
                    continue
                text = cell_value_to_text(to_cell_value(cell.value))
                row_span, col_span = anchors.get(position, (1, 1))
                cells.append(
                    GridCell(
                        row=cell.row - 1,
                        col=cell.column - 1,
                        text=text,
                        is_header=classify_template_cell(
                            text,
                            self.config.known_labels,
                            self.config.document_titles,
                            style_hint=_has_label_fill(cell),
                        ),
                        row_span=row_span,
                        col_span=col_span,
                    )
                )
        return Grid(cells=cells, row_count=ws.max_row, col_count=ws.max_column, base=0)


def _local(tag: str) -> str:
    """Strip the XML namespace from a tag."""
    return tag.rsplit("}", 1)[-1]


def _children(elem: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in elem if _local(child.tag) == name]


def _int_attr(elem: Optional[ET.Element], name: str, default: Optional[int] = None) -> Optional[int]:
    if elem is None or elem.get(name) is None:
        return default
    try:
        return int(elem.get(name))
    except ValueError:
        return default


class HwpxTemplateReader:
    """Reads the tables of an HWPX document (zip of OWPML sections)."""

    def __init__(self, config: Optional[HeuristicConfig] = None):
        self.config = config or HeuristicConfig()

    def read(self, data: bytes, source_name: str = "template.hwpx") -> TemplateDocument:
        tables: list[Grid] = []
        for root in self._section_roots(data, source_name):
            for tbl in self._find_tables(root):
                tables.append(self._parse_table(tbl))
        logger.info(f"Read template '{source_name}': {len(tables)} table(s)")
        return TemplateDocument(source_name=source_name, tables=tables)

    def _section_roots(self, data: bytes, source_name: str) -> list[ET.Element]:
        try:
            with zipfile.ZipFile(io.BytesIO(data)) as archive:
                sections = []
                for name in archive.namelist():
                    match = SECTION_FILE_PATTERN.match(name)
                    if match:
                        sections.append((int(match.group(1)), name))
                if not sections:
                    raise TemplateReadError(f"Template '{source_name}' has no section content")
                return [ET.fromstring(archive.read(name)) for _, name in sorted(sections)]
        except (zipfile.BadZipFile, ET.ParseError) as e:
            raise TemplateReadError(f"Failed to read template '{source_name}': {e}") from e

    def _find_tables(self, elem: ET.Element) -> Iterator[ET.Element]:
        """Yield top-level tables; tables nested inside cells belong to their parent."""
        for child in elem:
            if _local(child.tag) == "tbl":
                yield child
            else:
                yield from self._find_tables(child)

    def _parse_table(self, tbl: ET.Element) -> Grid:
        row_count = _int_attr(tbl, "rowCnt", 0)
        col_count = _int_attr(tbl, "colCnt", 0)
        cells: list[GridCell] = []

        for row_index, tr in enumerate(_children(tbl, "tr")):
            col_offset = 0
            for tc in _children(tr, "tc"):
                addr = next(iter(_children(tc, "cellAddr")), None)
                span = next(iter(_children(tc, "cellSpan")), None)
                col = _int_attr(addr, "colAddr", col_offset)
                row = _int_attr(addr, "rowAddr", row_index)
                col_span = max(1, _int_attr(span, "colSpan", 1))
                row_span = max(1, _int_attr(span, "rowSpan", 1))

                text = "".join(
                    "".join(t.itertext()) for t in tc.iter() if _local(t.tag) == "t"
                ).strip()
                is_header = classify_template_cell(
                    text,
                    self.config.known_labels,
                    self.config.document_titles,
                    style_hint=border_fill_hint(_int_attr(tc, "borderFillIDRef")),
                )
                cells.append(
                    GridCell(
                        row=row,
                        col=col,
                        text=text,
                        is_header=is_header,
                        row_span=row_span,
                        col_span=col_span,
                    )
                )
                col_offset = col + col_span

        return Grid(cells=cells, row_count=row_count, col_count=col_count, base=0)


def read_template(data: bytes, filename: str, config: Optional[HeuristicConfig] = None) -> TemplateDocument:
    """Pick a template reader by file extension."""
    lowered = filename.lower()
    if lowered.endswith(".hwpx"):
        return HwpxTemplateReader(config).read(data, filename)
    if lowered.endswith((".xlsx", ".xlsm")):
        return XlsxTemplateReader(config).read(data, filename)
    raise TemplateReadError(f"Unsupported template format: {filename}")
