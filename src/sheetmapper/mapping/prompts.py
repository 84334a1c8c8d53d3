"""Prompts for the external semantic matchers."""

from ..grid.models import Grid, GridCell
from .models import MappingContext

# Shared response contract for both matchers
RESPONSE_FORMAT = """Respond with JSON only, in this exact shape:
{
  "matches": [
    {"sourceColumn": "<column name, verbatim>", "labelRow": <row>, "labelCol": <col>, "labelText": "<label text>", "confidence": <0.0-1.0>}
  ]
}
labelRow/labelCol are the position of the LABEL cell, not the data cell.
Only use column names and label positions that appear above. Omit columns you cannot place."""

TEMPLATE_STRUCTURE_SYSTEM_PROMPT = """You analyze the table of a fill-in document template.
Cells marked [label] are field names (for example "성명", "연락처"); unmarked cells are slots
where values are written. Section headings such as "1. 신상정보" and document titles are not
fields. Decide which template label each spreadsheet column belongs to."""

COLUMN_SEMANTICS_SYSTEM_PROMPT = """You match spreadsheet column names to the labels of a document
template by meaning, not spelling. "핸드폰" and "연락처" are the same field, so are "이름" and "성명".
Hierarchical column names join their header levels with "_"; the last part is the most specific.
When domain context defines field relations, apply them before anything else."""

MERGE_STRATEGY_NAMES = {
    "concat": "concatenate values",
    "first": "first non-empty value only",
    "all": "map every source column",
}


def describe_template(grid: Grid, max_rows: int = 25) -> str:
    """Render a template grid as one line per cell with label markers."""
    lines = [f"Size: {grid.row_count} rows x {grid.col_count} cols"]
    for index, (_, cells) in enumerate(grid.iter_rows()):
        if index >= max_rows:
            break
        for cell in cells:
            text = cell.text.strip() or "(empty)"
            marker = " [label]" if cell.is_header else ""
            span = ""
            if cell.is_merged:
                span = f" span={cell.row_span}x{cell.col_span}"
            lines.append(f'({cell.row},{cell.col}): "{text}"{marker}{span}')
    return "\n".join(lines)


def describe_columns(columns: list[str]) -> str:
    return "\n".join(f'{i}. "{column}"' for i, column in enumerate(columns, start=1))


def describe_labels(labels: list[GridCell]) -> str:
    return "\n".join(
        f'{i}. "{label.text.strip()}" (position: {label.row}, {label.col})'
        for i, label in enumerate(labels, start=1)
    )


def describe_context(context: MappingContext) -> str:
    """Render the caller's domain context as a prompt section."""
    if context.is_empty:
        return ""

    sections = ["## Domain context (must be applied)"]
    if context.description:
        sections.append(f"### Description\n{context.description}")

    if context.field_relations:
        lines = ["### Field relations"]
        for relation in context.field_relations:
            sources = " + ".join(f'"{s}"' for s in relation.source_fields)
            lines.append(f'- "{relation.target_field}" (template field) = {sources} (spreadsheet columns)')
            if relation.description:
                lines.append(f"  Note: {relation.description}")
            if relation.merge_strategy:
                lines.append(f"  Merge: {MERGE_STRATEGY_NAMES[relation.merge_strategy]}")
        sections.append("\n".join(lines))

    if context.synonyms:
        lines = ["### Synonyms"]
        for key, values in context.synonyms.items():
            lines.append(f'- "{key}" = ' + ", ".join(f'"{v}"' for v in values))
        sections.append("\n".join(lines))

    if context.special_rules:
        lines = ["### Special rules"]
        for rule in context.special_rules:
            lines.append(f"- When: {rule.condition}\n  Then: {rule.action}")
        sections.append("\n".join(lines))

    return "\n\n".join(sections)


def build_template_structure_prompt(grid: Grid, columns: list[str]) -> str:
    return (
        f"## Template table\n{describe_template(grid)}\n\n"
        f"## Spreadsheet columns\n{describe_columns(columns)}\n\n"
        f"## Task\nFor each spreadsheet column, find the template label it belongs to.\n\n"
        f"{RESPONSE_FORMAT}"
    )


def build_column_semantics_prompt(
    columns: list[str], labels: list[GridCell], context: MappingContext
) -> str:
    parts = [
        f"## Spreadsheet columns\n{describe_columns(columns)}",
        f"## Template labels\n{describe_labels(labels)}",
    ]
    context_section = describe_context(context)
    if context_section:
        parts.append(context_section)
    parts.append("## Task\nFind the column/label pairs that mean the same thing.")
    if context.field_relations:
        parts.append(
            "Field relations take priority: when a template field is defined as the sum of "
            "several columns, map every one of those columns to that field's label."
        )
    parts.append(RESPONSE_FORMAT)
    return "\n\n".join(parts)
