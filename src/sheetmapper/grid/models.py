"""Data models for grid cells shared by spreadsheets and templates."""

from datetime import date, datetime, time
from typing import Any, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator


class SheetMapperError(Exception):
    """Base class for errors that abort a mapping run."""

    pass


class GridStructureError(SheetMapperError):
    """Raised when grid cells overlap or collide."""

    pass


class SpreadsheetReadError(SheetMapperError):
    """Raised when a spreadsheet cannot be decoded."""

    pass


class SheetNotFoundError(SheetMapperError):
    """Raised when the requested worksheet does not exist."""

    def __init__(self, sheet_name: str, available: list[str]):
        self.sheet_name = sheet_name
        self.available = available
        super().__init__(
            f"Sheet '{sheet_name}' not found (available: {', '.join(available) or 'none'})"
        )


class TemplateReadError(SheetMapperError):
    """Raised when a template document cannot be decoded."""

    pass


class NoTemplateTableError(TemplateReadError):
    """Raised when a template document contains no table."""

    pass


# ---------------------------------------------------------------------------
# Cell values
# ---------------------------------------------------------------------------


class PlainValue(BaseModel):
    """A literal cell value (text, number, boolean, date)."""

    model_config = ConfigDict(frozen=True)

    value: Any = None


class RichText(BaseModel):
    """A cell holding formatted text runs."""

    model_config = ConfigDict(frozen=True)

    runs: list[str] = Field(default_factory=list)


class FormulaResult(BaseModel):
    """A formula cell together with its last computed result."""

    model_config = ConfigDict(frozen=True)

    formula: str
    result: Any = None


CellValue = Union[PlainValue, RichText, FormulaResult]


def _scalar_to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def cell_value_to_text(value: CellValue) -> str:
    """Convert a cell value to trimmed plain text; dates become YYYY-MM-DD."""
    if isinstance(value, PlainValue):
        text = _scalar_to_text(value.value)
    elif isinstance(value, RichText):
        text = "".join(value.runs)
    elif isinstance(value, FormulaResult):
        text = _scalar_to_text(value.result)
    else:
        raise TypeError(f"Unsupported cell value type: {type(value).__name__}")
    return text.strip()


# ---------------------------------------------------------------------------
# Grid
# ---------------------------------------------------------------------------


class GridCell(BaseModel):
    """A primary cell of a grid. Spans cover the rectangle anchored here."""

    model_config = ConfigDict(frozen=True)

    row: int
    col: int
    text: str = ""
    is_header: bool = False
    row_span: int = Field(default=1, ge=1)
    col_span: int = Field(default=1, ge=1)

    @property
    def end_row(self) -> int:
        return self.row + self.row_span - 1

    @property
    def end_col(self) -> int:
        return self.col + self.col_span - 1

    @property
    def is_merged(self) -> bool:
        return self.row_span > 1 or self.col_span > 1

    def covers(self, row: int, col: int) -> bool:
        return self.row <= row <= self.end_row and self.col <= col <= self.end_col


class Grid(BaseModel):
    """An immutable two-dimensional grid of cells.

    ``base`` is the index of the first row and column: 0 for template tables,
    1 for spreadsheets. Positions covered by another cell's span have no
    primary cell of their own.
    """

    model_config = ConfigDict(frozen=True)

    cells: tuple[GridCell, ...] = ()
    row_count: int = Field(default=0, ge=0)
    col_count: int = Field(default=0, ge=0)
    base: int = Field(default=0, ge=0)

    _index: dict[tuple[int, int], GridCell] = PrivateAttr(default_factory=dict)
    _rows: dict[int, list[GridCell]] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _check_overlaps(self) -> "Grid":
        index: dict[tuple[int, int], GridCell] = {}
        for cell in self.cells:
            key = (cell.row, cell.col)
            if key in index:
                raise GridStructureError(f"Two cells anchored at ({cell.row}, {cell.col})")
            index[key] = cell

        for cell in self.cells:
            if not cell.is_merged:
                continue
            for r in range(cell.row, cell.end_row + 1):
                for c in range(cell.col, cell.end_col + 1):
                    other = index.get((r, c))
                    if other is not None and other is not cell:
                        raise GridStructureError(
                            f"Cell ({r}, {c}) lies inside the span of ({cell.row}, {cell.col})"
                        )
        return self

    def model_post_init(self, __context: Any) -> None:
        for cell in self.cells:
            self._index[(cell.row, cell.col)] = cell
            self._rows.setdefault(cell.row, []).append(cell)
        for row_cells in self._rows.values():
            row_cells.sort(key=lambda c: c.col)

    def cell_at(self, row: int, col: int) -> Optional[GridCell]:
        """Return the primary cell anchored at a position, if any."""
        return self._index.get((row, col))

    def owner_of(self, row: int, col: int) -> Optional[GridCell]:
        """Return the cell whose rectangle covers a position, if any."""
        cell = self._index.get((row, col))
        if cell is not None:
            return cell
        for candidate in self.merged_cells():
            if candidate.covers(row, col):
                return candidate
        return None

    def text_at(self, row: int, col: int) -> str:
        """Text of the primary cell at a position; empty for covered or blank positions."""
        cell = self._index.get((row, col))
        return cell.text.strip() if cell is not None else ""

    def row_cells(self, row: int) -> list[GridCell]:
        """Primary cells of a row ordered by column."""
        return list(self._rows.get(row, []))

    def non_empty_cells(self, row: int) -> list[GridCell]:
        return [cell for cell in self._rows.get(row, []) if cell.text.strip()]

    def row_texts(self, row: int) -> list[tuple[int, str]]:
        """``(col, text)`` for every non-empty position of a row.

        Positions covered by a span report the text of the cell that owns
        them, so a merge counts once per column it occupies.
        """
        texts = []
        for col in range(self.base, self.base + self.col_count):
            owner = self.owner_of(row, col)
            if owner is not None and owner.text.strip():
                texts.append((col, owner.text.strip()))
        return texts

    def merged_cells(self) -> list[GridCell]:
        return [cell for cell in self.cells if cell.is_merged]

    def iter_rows(self) -> Iterator[tuple[int, list[GridCell]]]:
        for row in sorted(self._rows):
            yield row, list(self._rows[row])

    def contains(self, row: int, col: int) -> bool:
        """Whether a position lies within the declared bounds."""
        return (
            self.base <= row < self.base + self.row_count
            and self.base <= col < self.base + self.col_count
        )

    @property
    def last_row(self) -> int:
        return self.base + self.row_count - 1

    @property
    def last_col(self) -> int:
        return self.base + self.col_count - 1


class TemplateDocument(BaseModel):
    """Tables read from a template document, in document order."""

    source_name: str = "template"
    tables: list[Grid] = Field(default_factory=list)

    def table(self, index: int = 0) -> Grid:
        if not self.tables:
            raise NoTemplateTableError(f"Template '{self.source_name}' contains no table")
        if index < 0 or index >= len(self.tables):
            raise NoTemplateTableError(
                f"Template '{self.source_name}' has {len(self.tables)} table(s); "
                f"table {index} requested"
            )
        return self.tables[index]
