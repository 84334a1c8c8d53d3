"""Header inference for irregular spreadsheets."""

from .models import HeaderAnalysisResult, HierarchicalColumn, MergeInfo, NoColumnsError
from .detector import (
    HeaderDetector,
    detect_header_rows,
    detect_metadata_rows,
    extract_merge_spans,
    find_main_header_row,
    find_single_header_row,
    synthesize_hierarchical_columns,
)

__all__ = [
    "HeaderAnalysisResult",
    "HierarchicalColumn",
    "MergeInfo",
    "NoColumnsError",
    "HeaderDetector",
    "detect_header_rows",
    "detect_metadata_rows",
    "extract_merge_spans",
    "find_main_header_row",
    "find_single_header_row",
    "synthesize_hierarchical_columns",
]
