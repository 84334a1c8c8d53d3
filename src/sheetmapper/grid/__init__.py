"""Grid model and the readers that build it."""

from .models import (
    CellValue,
    FormulaResult,
    Grid,
    GridCell,
    GridStructureError,
    NoTemplateTableError,
    PlainValue,
    RichText,
    SheetMapperError,
    SheetNotFoundError,
    SpreadsheetReadError,
    TemplateDocument,
    TemplateReadError,
    cell_value_to_text,
)
from .classify import classify_template_cell, normalize_label
from .reader import (
    HwpxTemplateReader,
    SpreadsheetReader,
    XlsxTemplateReader,
    read_template,
)

__all__ = [
    "CellValue",
    "FormulaResult",
    "Grid",
    "GridCell",
    "GridStructureError",
    "NoTemplateTableError",
    "PlainValue",
    "RichText",
    "SheetMapperError",
    "SheetNotFoundError",
    "SpreadsheetReadError",
    "TemplateDocument",
    "TemplateReadError",
    "cell_value_to_text",
    "classify_template_cell",
    "normalize_label",
    "HwpxTemplateReader",
    "SpreadsheetReader",
    "XlsxTemplateReader",
    "read_template",
]
