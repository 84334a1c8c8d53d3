"""Deterministic, position-aware matching of spreadsheet columns to template cells.

Matching runs in two greedy passes, each a pure function over immutable
used-sets:

1. Literal overrides: ``(pattern → row, col)`` rules for fields that cannot be
   located by label text, such as per-quarter or per-session slots.
2. Label matching: each remaining column is compared with the template's
   label cells and placed in the data cell next to (or under) the label.
"""

import logging
import re
from typing import Iterable, Optional

from ..config import HeuristicConfig, OverrideRule
from ..grid.classify import normalize_label
from ..grid.models import Grid, GridCell
from .models import CandidateOrigin, MappingCandidate, MappingContext

logger = logging.getLogger(__name__)

SECTION_NUMBER_PATTERN = re.compile(r"^\d+\.")
EMAIL_PATTERN = re.compile(r"@")
PHONE_DIGITS_PATTERN = re.compile(r"^\d{10,}$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

Position = tuple[int, int]


def is_section_or_title(text: str, config: Optional[HeuristicConfig] = None) -> bool:
    """Whether text is a section heading or document title rather than a field label.

    Long text counts as a title unless it looks like a filled-in value
    (e-mail address, phone number, ISO date).
    """
    config = config or HeuristicConfig()
    trimmed = text.strip()
    if SECTION_NUMBER_PATTERN.match(trimmed):
        return True
    if trimmed in config.document_titles:
        return True
    if EMAIL_PATTERN.search(trimmed):
        return False
    if PHONE_DIGITS_PATTERN.match(re.sub(r"[-\s]", "", trimmed)):
        return False
    if ISO_DATE_PATTERN.match(trimmed):
        return False
    return len(trimmed) > config.section_title_max_length


def label_cells(grid: Grid, config: Optional[HeuristicConfig] = None) -> list[GridCell]:
    """Template cells that look like field labels, in row-major order."""
    config = config or HeuristicConfig()
    labels = []
    for _, cells in grid.iter_rows():
        for cell in cells:
            text = cell.text.strip()
            if len(text) < 2 or is_section_or_title(text, config):
                continue
            if cell.is_header or 2 <= len(text) <= config.short_label_max:
                labels.append(cell)
    return labels


def _is_data_slot(cell: GridCell, config: HeuristicConfig) -> bool:
    return not cell.is_header and not is_section_or_title(cell.text, config)


def locate_data_cell(
    grid: Grid, label: GridCell, config: Optional[HeuristicConfig] = None
) -> Optional[GridCell]:
    """Find the cell that receives the value for a label.

    Looks right of the label first (past its column span, skipping other
    label cells), then below it in the same column, up to
    ``config.below_scan_rows`` rows past its row span.
    """
    config = config or HeuristicConfig()

    for cell in grid.row_cells(label.row):
        if cell.col <= label.end_col:
            continue
        if _is_data_slot(cell, config):
            return cell

    start_row = label.end_row + 1
    for row in range(start_row, start_row + config.below_scan_rows + 1):
        cell = grid.cell_at(row, label.col)
        if cell is not None and _is_data_slot(cell, config):
            return cell

    return None


def apply_overrides(
    columns: Iterable[str],
    rules: list[OverrideRule],
    confidence: float,
    used_columns: frozenset[str] = frozenset(),
    used_cells: frozenset[Position] = frozenset(),
) -> tuple[list[MappingCandidate], frozenset[str], frozenset[Position]]:
    """Place columns matching a literal override rule.

    A column stops at its first matching rule, even when that rule's cell is
    already taken.
    """
    candidates = []
    for column in columns:
        if column in used_columns:
            continue
        for rule in rules:
            if not rule.matches(column):
                continue
            target = (rule.target_row, rule.target_col)
            if target not in used_cells:
                candidates.append(
                    MappingCandidate(
                        source_column=column,
                        target_row=rule.target_row,
                        target_col=rule.target_col,
                        label_text=rule.label,
                        confidence=confidence,
                        origin=CandidateOrigin.RULE,
                        reason=f'override "{rule.label}": "{column}" -> {target}',
                    )
                )
                used_columns = used_columns | {column}
                used_cells = used_cells | {target}
                logger.debug(f"Override matched '{column}' -> {target}")
            break
    return candidates, used_columns, used_cells


def match_labels(
    grid: Grid,
    columns: Iterable[str],
    labels: list[GridCell],
    config: Optional[HeuristicConfig] = None,
    used_columns: frozenset[str] = frozenset(),
    used_cells: frozenset[Position] = frozenset(),
) -> tuple[list[MappingCandidate], frozenset[str], frozenset[Position]]:
    """Match columns to label cells by normalized text.

    An exact match scores ``exact_match_confidence``, containment in either
    direction ``partial_match_confidence``. A column takes the first matching
    label whose data cell is still free.
    """
    config = config or HeuristicConfig()
    normalized_labels = [(label, normalize_label(label.text)) for label in labels]
    candidates = []

    for column in columns:
        normalized_column = normalize_label(column)
        if len(normalized_column) < 2 or column in used_columns:
            continue

        for label, normalized_label in normalized_labels:
            exact = normalized_label == normalized_column
            partial = (
                len(normalized_label) >= 2 and normalized_label in normalized_column
            ) or normalized_column in normalized_label
            if not (exact or partial):
                continue

            data_cell = locate_data_cell(grid, label, config)
            if data_cell is None:
                logger.debug(f"No data cell for label '{label.text}' at ({label.row}, {label.col})")
                continue
            target = (data_cell.row, data_cell.col)
            if target in used_cells:
                continue

            candidates.append(
                MappingCandidate(
                    source_column=column,
                    target_row=data_cell.row,
                    target_col=data_cell.col,
                    label_text=label.text.strip(),
                    confidence=(
                        config.exact_match_confidence if exact else config.partial_match_confidence
                    ),
                    origin=CandidateOrigin.RULE,
                    reason=f'label "{label.text.strip()}" -> data cell {target}',
                )
            )
            used_columns = used_columns | {column}
            used_cells = used_cells | {target}
            break

    return candidates, used_columns, used_cells


class SpatialRuleMatcher:
    """Candidate generator based on label text and template geometry."""

    origin = CandidateOrigin.RULE

    def __init__(self, config: Optional[HeuristicConfig] = None):
        self.config = config or HeuristicConfig()

    async def generate(
        self,
        template: Grid,
        columns: list[str],
        context: Optional[MappingContext] = None,
    ) -> list[MappingCandidate]:
        """Produce rule-based candidates; ``context`` is accepted for interface parity."""
        labels = label_cells(template, self.config)
        logger.debug(f"Found {len(labels)} label cells in template")

        override_candidates, used_columns, used_cells = apply_overrides(
            columns, self.config.override_rules, self.config.override_confidence
        )
        label_candidates, _, _ = match_labels(
            template, columns, labels, self.config, used_columns, used_cells
        )

        candidates = override_candidates + label_candidates
        logger.info(
            f"Rule matcher: {len(override_candidates)} override and "
            f"{len(label_candidates)} label candidates"
        )
        return candidates
