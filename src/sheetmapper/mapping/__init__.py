"""Column → template-cell mapping."""

from .models import (
    CandidateOrigin,
    FieldRelation,
    FinalMapping,
    Issue,
    IssueKind,
    MappingCandidate,
    MappingContext,
    MappingResult,
    SpecialRule,
    Suggestion,
    ValidationResult,
)
from .rules import (
    SpatialRuleMatcher,
    apply_overrides,
    is_section_or_title,
    label_cells,
    locate_data_cell,
    match_labels,
)
from .semantic import (
    ColumnSemanticsMatcher,
    ExternalSemanticMatcher,
    TemplateStructureMatcher,
    parse_matches,
)
from .merger import merge_candidates
from .finalizer import finalize
from .validator import MappingValidator
from .pipeline import MappingPipeline

__all__ = [
    "CandidateOrigin",
    "FieldRelation",
    "FinalMapping",
    "Issue",
    "IssueKind",
    "MappingCandidate",
    "MappingContext",
    "MappingResult",
    "SpecialRule",
    "Suggestion",
    "ValidationResult",
    "SpatialRuleMatcher",
    "apply_overrides",
    "is_section_or_title",
    "label_cells",
    "locate_data_cell",
    "match_labels",
    "ColumnSemanticsMatcher",
    "ExternalSemanticMatcher",
    "TemplateStructureMatcher",
    "parse_matches",
    "merge_candidates",
    "finalize",
    "MappingValidator",
    "MappingPipeline",
]
