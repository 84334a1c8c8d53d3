"""Data models for header inference results."""

from dataclasses import dataclass

from pydantic import BaseModel, Field, model_validator

from ..grid.models import SheetMapperError


class NoColumnsError(SheetMapperError):
    """Raised when no column names can be inferred from a spreadsheet."""

    pass


@dataclass(frozen=True)
class MergeInfo:
    """A merged span anchored on a header row."""

    start_row: int
    end_row: int
    start_col: int
    end_col: int
    text: str


class HierarchicalColumn(BaseModel):
    """A spreadsheet column with its synthesized, result-unique name."""

    name: str
    source_col_index: int
    depth: int = 0


class HeaderAnalysisResult(BaseModel):
    """Outcome of header inference over one spreadsheet grid."""

    meta_rows: list[int] = Field(default_factory=list)
    header_rows: list[int] = Field(default_factory=list)
    main_header_row: int = 1
    data_start_row: int = 2
    columns: list[HierarchicalColumn] = Field(default_factory=list)
    meta_info: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_rows(self) -> "HeaderAnalysisResult":
        if self.header_rows != sorted(self.header_rows):
            raise ValueError("header_rows must be ascending")
        if set(self.header_rows) & set(self.meta_rows):
            raise ValueError("header_rows and meta_rows must be disjoint")
        if self.header_rows and self.data_start_row <= max(self.header_rows):
            raise ValueError("data_start_row must follow the last header row")
        names = [column.name for column in self.columns]
        if len(names) != len(set(names)):
            raise ValueError("column names must be unique")
        return self

    @property
    def column_names(self) -> list[str]:
        return [column.name for column in self.columns]
