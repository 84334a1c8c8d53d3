"""Data models for the column → template-cell mapping pipeline."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..headers.models import HeaderAnalysisResult


class CandidateOrigin(str, Enum):
    """Which generator proposed a candidate."""

    RULE = "rule"
    EXTERNAL_A = "external_a"  # template-structure matcher
    EXTERNAL_B = "external_b"  # column-semantics matcher


class IssueKind(str, Enum):
    """Severity of a validation issue."""

    MISSING = "missing"
    WARNING = "warning"
    INFO = "info"


class MappingCandidate(BaseModel):
    """A proposed, not yet confirmed, column → cell mapping."""

    source_column: str
    target_row: int
    target_col: int
    label_text: Optional[str] = None
    confidence: float = Field(ge=0.0, le=1.0)
    origin: CandidateOrigin
    reason: str = ""

    @property
    def target(self) -> tuple[int, int]:
        return (self.target_row, self.target_col)


class FinalMapping(BaseModel):
    """A confirmed mapping of a spreadsheet column into a template cell."""

    source_column: str
    target_row: int
    target_col: int

    @property
    def target(self) -> tuple[int, int]:
        return (self.target_row, self.target_col)


class Suggestion(FinalMapping):
    """An advisory mapping proposed by validation; never applied automatically."""

    label_text: str
    reason: str = ""


class Issue(BaseModel):
    """A validation finding about a required field."""

    kind: IssueKind
    field: str
    message: str
    target_row: Optional[int] = None
    target_col: Optional[int] = None
    suggested_column: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of checking a final mapping against the required fields."""

    is_valid: bool
    total_required_fields: int
    mapped_fields: int
    missing_fields: int
    issues: list[Issue] = Field(default_factory=list)
    suggestions: list[Suggestion] = Field(default_factory=list)


class FieldRelation(BaseModel):
    """Declares that a template field is fed by one or more spreadsheet columns."""

    target_field: str
    source_fields: list[str]
    merge_strategy: Optional[Literal["concat", "first", "all"]] = None
    description: Optional[str] = None


class SpecialRule(BaseModel):
    """A free-form domain rule forwarded to the column-semantics matcher."""

    condition: str
    action: str


class MappingContext(BaseModel):
    """Optional domain knowledge supplied by the caller."""

    description: Optional[str] = None
    field_relations: list[FieldRelation] = Field(default_factory=list)
    synonyms: dict[str, list[str]] = Field(default_factory=dict)
    special_rules: list[SpecialRule] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.description or self.field_relations or self.synonyms or self.special_rules)


class MappingResult(BaseModel):
    """Everything a pipeline run produces."""

    header_analysis: Optional[HeaderAnalysisResult] = None
    columns: list[str] = Field(default_factory=list)
    candidate_counts: dict[str, int] = Field(default_factory=dict)
    merged_candidates: list[MappingCandidate] = Field(default_factory=list)
    mappings: list[FinalMapping] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)
    validation: ValidationResult
