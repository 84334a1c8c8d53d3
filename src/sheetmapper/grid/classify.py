"""Label/data classification for template cells."""

import re
from typing import Iterable, Optional

SECTION_TITLE_PATTERN = re.compile(r"^\d+\.\s*")
EMAIL_PATTERN = re.compile(r"@")
PHONE_PATTERN = re.compile(r"^\d{2,4}[-\s]?\d{3,4}[-\s]?\d{4}$")
DATE_PATTERN = re.compile(r"^\d{4}[-/]\d{1,2}[-/]\d{1,2}$")
PERSON_NAME_PATTERN = re.compile(r"^[가-힣]{2,4}$")

# borderFillIDRef values used by label cells / data cells in the HWPX forms we see
LABEL_BORDER_FILLS = {8, 9, 11}
DATA_BORDER_FILLS = {10}


def normalize_label(text: str) -> str:
    """Collapse all whitespace and lowercase; used for every label comparison."""
    return re.sub(r"\s+", "", text).lower()


def is_data_value(text: str, known_labels: Iterable[str] = ()) -> bool:
    """Whether text looks like a filled-in value (e-mail, phone, date, person name)."""
    trimmed = text.strip()
    if not trimmed:
        return False
    if EMAIL_PATTERN.search(trimmed):
        return True
    if PHONE_PATTERN.match(re.sub(r"\s", "", trimmed)):
        return True
    if DATE_PATTERN.match(trimmed):
        return True
    if PERSON_NAME_PATTERN.match(trimmed):
        normalized = normalize_label(trimmed)
        return not any(normalize_label(label) == normalized for label in known_labels)
    return False


def classify_template_cell(
    text: str,
    known_labels: Iterable[str],
    document_titles: Iterable[str] = (),
    style_hint: Optional[bool] = None,
) -> bool:
    """Decide whether a template cell is a label (True) or a data slot (False).

    ``style_hint`` carries what the document styling says: True for label
    styling, False for data styling, None when unknown.
    """
    known_labels = list(known_labels)
    trimmed = text.strip()
    normalized = normalize_label(trimmed)

    if SECTION_TITLE_PATTERN.match(trimmed) or trimmed in set(document_titles):
        return True
    if is_data_value(trimmed, known_labels):
        return False
    if not trimmed or trimmed == "-":
        return False
    if any(normalize_label(label) == normalized for label in known_labels):
        return True
    if style_hint is not None:
        return style_hint
    return len(trimmed) <= 6


def border_fill_hint(border_fill_id: Optional[int]) -> Optional[bool]:
    """Translate an HWPX borderFillIDRef into a label/data style hint."""
    if border_fill_id in LABEL_BORDER_FILLS:
        return True
    if border_fill_id in DATA_BORDER_FILLS:
        return False
    return None
