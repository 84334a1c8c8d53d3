"""Required-field checklist over a final mapping."""

import logging
from typing import Optional

from ..config import HeuristicConfig, RequiredField
from ..grid.classify import normalize_label
from ..grid.models import Grid, GridCell
from .models import FinalMapping, Issue, IssueKind, Suggestion, ValidationResult
from .rules import label_cells, locate_data_cell

logger = logging.getLogger(__name__)

EXACT_SCORE = 100
PARTIAL_SCORE = 70


def _names_overlap(a: str, b: str) -> bool:
    return bool(a and b) and (a == b or a in b or b in a)


class MappingValidator:
    """Checks which required fields a mapping covers and suggests fixes for the rest."""

    def __init__(self, config: Optional[HeuristicConfig] = None):
        self.config = config or HeuristicConfig()

    def is_field_mapped(self, field: RequiredField, mapped_columns: list[str]) -> bool:
        names = [normalize_label(name) for name in field.all_names]
        columns = [normalize_label(column) for column in mapped_columns]
        return any(_names_overlap(column, name) for name in names for column in columns)

    def find_label(self, field: RequiredField, labels: list[GridCell]) -> Optional[GridCell]:
        names = {normalize_label(name) for name in field.all_names}
        for label in labels:
            if normalize_label(label.text) in names:
                return label
        return None

    def suggest_column(
        self, field: RequiredField, columns: list[str], mapped_columns: set[str]
    ) -> Optional[str]:
        """Best unmapped column by name overlap; the earliest column wins ties."""
        names = [normalize_label(name) for name in field.all_names]
        best_column = None
        best_score = 0
        for column in columns:
            if column in mapped_columns:
                continue
            normalized = normalize_label(column)
            score = 0
            for name in names:
                if normalized == name:
                    score = EXACT_SCORE
                    break
                if _names_overlap(normalized, name):
                    score = max(score, PARTIAL_SCORE)
            if score > best_score:
                best_score = score
                best_column = column
        return best_column

    def unmapped_lookalikes(
        self, columns: list[str], mapped_columns: set[str], issues: list[Issue]
    ) -> list[Issue]:
        """Warn about unmapped columns named like a required field.

        Columns already offered as a suggestion are left out.
        """
        suggested = {issue.suggested_column for issue in issues if issue.suggested_column}
        warnings = []
        for column in columns:
            if column in mapped_columns or column in suggested:
                continue
            normalized = normalize_label(column)
            for field in self.config.required_fields:
                names = [normalize_label(name) for name in field.all_names]
                if any(_names_overlap(normalized, name) for name in names):
                    warnings.append(
                        Issue(
                            kind=IssueKind.WARNING,
                            field=field.name,
                            message=f'Column "{column}" looks like "{field.name}" but is not mapped',
                            suggested_column=column,
                        )
                    )
                    break
        return warnings

    def validate(
        self, mappings: list[FinalMapping], columns: list[str], template: Grid
    ) -> ValidationResult:
        """Validate a final mapping against the required-field checklist.

        Suggestions are advisory and never applied to ``mappings``.
        """
        mapped_columns = [m.source_column for m in mappings]
        mapped_column_set = set(mapped_columns)
        claimed_cells = {m.target for m in mappings}
        labels = [cell for cell in label_cells(template, self.config) if cell.is_header]

        issues: list[Issue] = []
        suggestions: list[Suggestion] = []
        mapped_count = 0

        for field in self.config.required_fields:
            if self.is_field_mapped(field, mapped_columns):
                mapped_count += 1
                continue

            data_cell = None
            label = self.find_label(field, labels)
            if label is not None:
                data_cell = locate_data_cell(template, label, self.config)
            suggested = self.suggest_column(field, columns, mapped_column_set)

            issues.append(
                Issue(
                    kind=IssueKind.MISSING,
                    field=field.name,
                    message=f'Required field "{field.name}" is not mapped',
                    target_row=data_cell.row if data_cell else None,
                    target_col=data_cell.col if data_cell else None,
                    suggested_column=suggested,
                )
            )

            if suggested and data_cell is not None:
                target = (data_cell.row, data_cell.col)
                if target not in claimed_cells:
                    suggestions.append(
                        Suggestion(
                            source_column=suggested,
                            target_row=data_cell.row,
                            target_col=data_cell.col,
                            label_text=field.name,
                            reason=f'"{suggested}" looks like "{field.name}"',
                        )
                    )
                    issues.append(
                        Issue(
                            kind=IssueKind.INFO,
                            field=field.name,
                            message=(
                                f'Suggested "{suggested}" for "{field.name}" '
                                f"at cell ({data_cell.row}, {data_cell.col})"
                            ),
                            target_row=data_cell.row,
                            target_col=data_cell.col,
                            suggested_column=suggested,
                        )
                    )
                    claimed_cells.add(target)

        issues.extend(self.unmapped_lookalikes(columns, mapped_column_set, issues))

        total = len(self.config.required_fields)
        missing = total - mapped_count
        logger.info(
            f"Validation: {mapped_count}/{total} required fields mapped, "
            f"{len(suggestions)} suggestions"
        )
        return ValidationResult(
            is_valid=missing == 0,
            total_required_fields=total,
            mapped_fields=mapped_count,
            missing_fields=missing,
            issues=issues,
            suggestions=suggestions,
        )
