"""Header inference for spreadsheets with metadata rows and stacked, merged headers.

Spreadsheets exported from ad-hoc tracking sheets often look like::

    Row 1: Class Name : A-12
    Row 2:     |        | 4. 프로그램 참여현황 (merged over 4 columns)
    Row 3:     |        | 전문가 강연 (x2) | 전문가 컨설팅 (x2)
    Row 4: No. | 성명   | 1회 | 2회        | 1회 | 2회
    Row 5: 1   | 홍길동 | O   |            | O   | O

Inference runs in four steps: metadata rows, header rows, merge spans on the
header rows, and hierarchical column names such as
``4. 프로그램 참여현황_전문가 강연_1회``.
"""

import logging
import re
from typing import Optional

from ..config import HeuristicConfig
from ..grid.models import Grid
from .models import HeaderAnalysisResult, HierarchicalColumn, MergeInfo, NoColumnsError

logger = logging.getLogger(__name__)

META_PATTERN = re.compile(r"^([A-Za-z\s]+)\s*:\s*(.+)$")
META_PREFIX_PATTERN = re.compile(r"^[A-Za-z\s]+\s*:\s*.+")
DIGITS_PATTERN = re.compile(r"^\d+$")
DATE_MARKER_PATTERN = re.compile(r"^\d{2}\s*\([A-Za-z]{2,3}\)$")

FALLBACK_HEADER_ROW = 1


def detect_metadata_rows(grid: Grid, max_rows: int = 10) -> tuple[list[int], dict[str, str]]:
    """Find ``Key : value`` rows near the top of the sheet.

    Returns the metadata row numbers in scan order and the merged key/value
    pairs; a repeated key keeps its last value.
    """
    meta_rows: list[int] = []
    meta_info: dict[str, str] = {}

    for row in range(grid.base, grid.base + max_rows):
        is_meta_row = False
        for cell in grid.non_empty_cells(row):
            match = META_PATTERN.match(cell.text.strip())
            if match:
                is_meta_row = True
                meta_info[match.group(1).strip()] = match.group(2).strip()
        if is_meta_row:
            meta_rows.append(row)

    return meta_rows, meta_info


def score_header_row(grid: Grid, row: int, config: Optional[HeuristicConfig] = None) -> Optional[int]:
    """Score how header-like a row is; None when it has too few cells to judge."""
    config = config or HeuristicConfig()
    number_pattern = re.compile(config.number_label_pattern, re.IGNORECASE)
    name_pattern = re.compile(config.name_label_pattern, re.IGNORECASE)

    texts = [text for _, text in grid.row_texts(row)]
    if len(texts) < config.min_header_cells:
        return None

    short_labels = sum(
        1 for text in texts if config.short_label_min <= len(text) <= config.short_label_max
    )
    score = len(texts) * config.cell_count_weight + short_labels * config.short_label_weight
    if any(number_pattern.match(text) for text in texts):
        score += config.number_label_bonus
    if any(name_pattern.match(text) for text in texts):
        score += config.name_label_bonus
    if any(META_PREFIX_PATTERN.match(text) for text in texts):
        score -= config.meta_pattern_penalty
    return score


def find_main_header_row(
    grid: Grid,
    meta_rows: list[int],
    max_rows: int = 15,
    config: Optional[HeuristicConfig] = None,
) -> Optional[int]:
    """Return the best-scoring non-metadata row, earliest row on ties."""
    meta_row_set = set(meta_rows)
    scores: list[tuple[int, int]] = []
    for row in range(grid.base, grid.base + max_rows):
        if row in meta_row_set:
            continue
        score = score_header_row(grid, row, config)
        if score is not None:
            scores.append((row, score))

    if not scores:
        return None
    scores.sort(key=lambda item: item[1], reverse=True)
    return scores[0][0]


def _is_data_row(grid: Grid, row: int) -> bool:
    # Data rows carry a serial number in their first or second column
    first_cols = range(grid.base, grid.base + 2)
    return any(
        DIGITS_PATTERN.match(text) for col, text in grid.row_texts(row) if col in first_cols
    )


def _is_sub_header_row(grid: Grid, row: int, patterns: list[re.Pattern]) -> bool:
    return any(
        pattern.match(text) for _, text in grid.row_texts(row) for pattern in patterns
    )


def detect_header_rows(
    grid: Grid,
    meta_rows: list[int],
    max_rows: int = 15,
    config: Optional[HeuristicConfig] = None,
    main_row: Optional[int] = None,
) -> tuple[list[int], int]:
    """Find the (possibly multi-row) header and the first data row.

    ``main_row`` skips scoring when the caller already picked the main
    header row. Falls back to ``([1], 2)`` when no row has enough cells to
    be scored.
    """
    config = config or HeuristicConfig()
    if main_row is None:
        main_row = find_main_header_row(grid, meta_rows, max_rows, config)
    if main_row is None:
        logger.debug("No header row candidate scored; using fallback header row")
        return [FALLBACK_HEADER_ROW], FALLBACK_HEADER_ROW + 1

    meta_row_set = set(meta_rows)
    header_rows: list[int] = []

    # Group headers above the main row
    for row in range(main_row - 1, max(grid.base, main_row - config.rows_above_main) - 1, -1):
        if row in meta_row_set:
            continue
        if grid.row_texts(row):
            header_rows.insert(0, row)

    header_rows.append(main_row)

    # Sub-headers below the main row (session counters, weekday markers)
    sub_header_patterns = [re.compile(p) for p in config.sub_header_patterns]
    data_start_row = main_row + 1
    for row in range(main_row + 1, main_row + config.rows_below_main + 1):
        if row in meta_row_set:
            break
        if len(grid.row_texts(row)) < config.min_header_cells:
            break
        if _is_data_row(grid, row):
            data_start_row = row
            break
        if not _is_sub_header_row(grid, row, sub_header_patterns):
            continue
        header_rows.append(row)
        data_start_row = row + 1

    logger.debug(f"Header rows {header_rows}, data starts at row {data_start_row}")
    return header_rows, data_start_row


def extract_merge_spans(grid: Grid, header_rows: list[int]) -> list[MergeInfo]:
    """Collect merged spans anchored on a header row with non-empty text."""
    header_row_set = set(header_rows)
    merges = []
    for cell in grid.merged_cells():
        text = cell.text.strip()
        if cell.row not in header_row_set or not text:
            continue
        merges.append(
            MergeInfo(
                start_row=cell.row,
                end_row=cell.end_row,
                start_col=cell.col,
                end_col=cell.end_col,
                text=text,
            )
        )
    return merges


def _collect_header_values(
    grid: Grid, header_rows: list[int], merges: list[MergeInfo]
) -> dict[int, dict[int, str]]:
    """Map column → {row: text} over the header rows, with merged text propagated."""
    values: dict[int, dict[int, str]] = {}
    for row in header_rows:
        for cell in grid.non_empty_cells(row):
            text = cell.text.strip()
            if text == "undefined":
                continue
            values.setdefault(cell.col, {})[row] = text

    header_row_set = set(header_rows)
    for merge in merges:
        for col in range(merge.start_col, merge.end_col + 1):
            column_values = values.setdefault(col, {})
            for row in range(merge.start_row, merge.end_row + 1):
                if row in header_row_set and row not in column_values:
                    column_values[row] = merge.text
    return values


def _unique_name(name: str, seen: set[str]) -> str:
    unique = name
    counter = 1
    while unique in seen:
        counter += 1
        unique = f"{name}_{counter}"
    seen.add(unique)
    return unique


def synthesize_hierarchical_columns(
    grid: Grid,
    header_rows: list[int],
    merges: list[MergeInfo],
    main_header_row: Optional[int] = None,
    config: Optional[HeuristicConfig] = None,
) -> list[HierarchicalColumn]:
    """Build one unique hierarchical name per header column.

    Identity fields (serial number, name, phone, ...) keep only their deepest
    header value. Every other column joins its distinct header values top to
    bottom with ``_``, ignoring bare numbers and ``NN (Xxx)`` date markers.
    """
    if not header_rows:
        return []

    config = config or HeuristicConfig()
    basic_patterns = [re.compile(p, re.IGNORECASE) for p in config.basic_column_patterns]
    if main_header_row is None or main_header_row not in header_rows:
        main_header_row = header_rows[-1]
    depth = header_rows.index(main_header_row)

    values = _collect_header_values(grid, header_rows, merges)
    seen: set[str] = set()
    columns: list[HierarchicalColumn] = []

    for col in sorted(values):
        row_values = values[col]
        if not row_values:
            continue
        ordered = [row_values[row] for row in sorted(row_values)]

        is_basic = any(pattern.match(v) for v in ordered for pattern in basic_patterns)
        if is_basic:
            name = ordered[-1]
        else:
            parts: list[str] = []
            for value in ordered:
                if DATE_MARKER_PATTERN.match(value) or DIGITS_PATTERN.match(value):
                    continue
                if value not in parts:
                    parts.append(value)
            name = "_".join(parts) if parts else ordered[-1]

        columns.append(
            HierarchicalColumn(
                name=_unique_name(name, seen),
                source_col_index=col,
                depth=depth,
            )
        )

    return columns


def find_single_header_row(
    grid: Grid, meta_rows: list[int], max_rows: int = 15, skip_rows: Optional[list[int]] = None
) -> Optional[int]:
    """Return the first non-metadata row carrying any text, or None."""
    excluded = set(meta_rows) | set(skip_rows or [])
    for row in range(grid.base, grid.base + max_rows):
        if row not in excluded and grid.row_texts(row):
            return row
    return None


class HeaderDetector:
    """Runs header inference over a spreadsheet grid."""

    def __init__(self, config: Optional[HeuristicConfig] = None):
        self.config = config or HeuristicConfig()

    def analyze(self, grid: Grid) -> HeaderAnalysisResult:
        """Infer metadata, header rows, data start and hierarchical columns.

        When the detected header rows yield no column, the first non-metadata
        row carrying text is used as a single header row instead.

        Raises:
            NoColumnsError: If no header column carries any text
        """
        meta_rows, meta_info = detect_metadata_rows(grid, self.config.meta_scan_rows)
        main_row = find_main_header_row(grid, meta_rows, self.config.header_scan_rows, self.config)

        if main_row is None:
            # Fallback header row must not collide with a metadata row
            meta_row_set = set(meta_rows)
            fallback = FALLBACK_HEADER_ROW
            while fallback in meta_row_set:
                fallback += 1
            if fallback != FALLBACK_HEADER_ROW:
                logger.warning(f"Fallback header row moved to row {fallback} past metadata rows")
            header_rows, data_start_row = [fallback], fallback + 1
            main_row = fallback
        else:
            header_rows, data_start_row = detect_header_rows(
                grid, meta_rows, self.config.header_scan_rows, self.config, main_row=main_row
            )

        merges = extract_merge_spans(grid, header_rows)
        columns = synthesize_hierarchical_columns(
            grid, header_rows, merges, main_header_row=main_row, config=self.config
        )

        if not columns:
            single_row = find_single_header_row(
                grid, meta_rows, self.config.header_scan_rows, skip_rows=header_rows
            )
            if single_row is not None:
                logger.warning(
                    f"Header rows {header_rows} yield no columns; using row {single_row} as header"
                )
                header_rows, data_start_row, main_row = [single_row], single_row + 1, single_row
                merges = extract_merge_spans(grid, header_rows)
                columns = synthesize_hierarchical_columns(
                    grid, header_rows, merges, main_header_row=main_row, config=self.config
                )

        logger.info(
            f"Header analysis: meta rows {meta_rows}, header rows {header_rows}, "
            f"data starts at {data_start_row}, {len(merges)} merges, {len(columns)} columns"
        )

        if not columns:
            raise NoColumnsError("No column names could be inferred from the spreadsheet header")

        return HeaderAnalysisResult(
            meta_rows=meta_rows,
            header_rows=header_rows,
            main_header_row=main_row,
            data_start_row=data_start_row,
            columns=columns,
            meta_info=meta_info,
        )
