"""
Value Normalizers

Helpers shared by the condition evaluator, the eligibility engine and the
feature extractor: missing-value detection, string normalization, label
aliasing and display formatting.
"""

import math
from typing import Any, List, Optional

from .constants import ST_BRACKET_LABELS, YEAR_LEVEL_LABELS


def has_value(value: Any) -> bool:
    """True unless value is None, an empty/blank string, NaN or an empty list."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, float) and math.isnan(value):
        return False
    if isinstance(value, (list, tuple, set)):
        return len(value) > 0
    return True


def normalize_string(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


def to_number(value: Any) -> Optional[float]:
    """Coerce value to float, returning None when it is missing or non-numeric."""
    if isinstance(value, bool) or not has_value(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def fuzzy_contains(left: Any, right: Any) -> bool:
    """Case-insensitive substring containment in either direction."""
    a = normalize_string(left)
    b = normalize_string(right)
    if not a or not b:
        return False
    return a in b or b in a


def canonical_st_bracket(value: Any) -> Optional[str]:
    """Map short bracket codes (FDS, PD80, ...) to their canonical label."""
    if not has_value(value):
        return None
    text = str(value).strip()
    return ST_BRACKET_LABELS.get(text.upper(), text)


def canonical_year_level(value: Any) -> Optional[str]:
    """Map year-level spellings ('1st year') to classifications ('Freshman')."""
    if not has_value(value):
        return None
    text = str(value).strip()
    return YEAR_LEVEL_LABELS.get(text.upper(), text)


def get_nested_value(record: Any, path: str) -> Any:
    """
    Resolve a dot path against a pydantic model or dict.

    Falls back to `custom_fields` when the first path segment is not an
    attribute of the record.
    """
    if not path:
        return None
    current = record
    for index, part in enumerate(path.split(".")):
        if current is None:
            return None
        if isinstance(current, dict):
            current = current.get(part)
            continue
        if hasattr(current, part):
            current = getattr(current, part)
            continue
        custom = getattr(current, "custom_fields", None) if index == 0 else None
        if isinstance(custom, dict):
            current = custom.get(part)
            continue
        return None
    return current


def format_value(value: Any) -> str:
    """Display formatting used for applicant/required values in check results."""
    if not has_value(value):
        return "Not specified"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float) and value.is_integer():
        return f"{int(value):,}"
    if isinstance(value, (int, float)):
        return f"{value:,}"
    if isinstance(value, (list, tuple, set)):
        return ", ".join(str(v) for v in value)
    return str(value)


def format_list(values: List[Any], limit: int = 5) -> str:
    if not values:
        return "Any"
    shown = ", ".join(str(v) for v in values[:limit])
    if len(values) > limit:
        shown += f" (+{len(values) - limit} more)"
    return shown
