"""Conflict resolution that turns merged candidates into final mappings."""

import logging

from ..grid.models import Grid
from .models import FinalMapping, MappingCandidate

logger = logging.getLogger(__name__)


def finalize(
    candidates: list[MappingCandidate],
    template: Grid,
    confidence_floor: float = 0.5,
) -> tuple[list[FinalMapping], list[str]]:
    """Accept candidates in descending confidence order.

    A candidate is rejected, with a human-readable issue, when its cell is
    already claimed, its column is already mapped, its cell lies outside the
    template, or its confidence is below ``confidence_floor``.
    """
    issues: list[str] = []
    used_cells: set[tuple[int, int]] = set()
    used_columns: set[str] = set()
    mappings: list[FinalMapping] = []

    # sorted() is stable, so equal confidences keep their merge order
    ordered = sorted(candidates, key=lambda c: c.confidence, reverse=True)

    for candidate in ordered:
        row, col = candidate.target
        column = candidate.source_column

        if candidate.target in used_cells:
            issues.append(f'Cell ({row}, {col}) already claimed; skipped "{column}"')
            continue
        if column in used_columns:
            issues.append(f'Column "{column}" already mapped; skipped cell ({row}, {col})')
            continue
        if not template.contains(row, col):
            if template.base <= row <= template.last_row:
                issues.append(f'Column index {col} out of range for "{column}"')
            else:
                issues.append(f'Row {row} out of range for "{column}"')
            continue
        if candidate.confidence < confidence_floor:
            issues.append(f'Low confidence ({candidate.confidence:.2f}) for "{column}"')
            continue

        mappings.append(FinalMapping(source_column=column, target_row=row, target_col=col))
        used_cells.add(candidate.target)
        used_columns.add(column)

    logger.info(f"Finalized {len(mappings)} mappings with {len(issues)} issues")
    return mappings, issues
