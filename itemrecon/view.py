from __future__ import annotations

from functools import cmp_to_key
from typing import Any, Callable, Dict, List, Sequence

from .models import ClassifiedRow, MergedRow
from .normalize import normalize_text, to_number

SORT_KEYS: Dict[str, Callable[[MergedRow], Any]] = {
    "order": lambda r: r.order,
    "classification_a": lambda r: r.classification_a,
    "classification_b": lambda r: r.classification_b,
    "description_a": lambda r: r.description_a,
    "description_b": lambda r: r.description_b,
    "quantity_a": lambda r: r.quantity_a,
    "quantity_b": lambda r: r.quantity_b,
    "unit_a": lambda r: r.unit_a,
    "unit_b": lambda r: r.unit_b,
    "value_a": lambda r: r.value_a,
    "value_b": lambda r: r.value_b,
}


def compare_values(a: Any, b: Any) -> int:
    """Numeric comparison when either side reads as a non-zero number, text otherwise."""
    num_a = to_number(a)
    num_b = to_number(b)
    if num_a or num_b:
        return (num_a > num_b) - (num_a < num_b)
    text_a = normalize_text(a)
    text_b = normalize_text(b)
    return (text_a > text_b) - (text_a < text_b)


def sort_rows(rows: Sequence[ClassifiedRow], key: str = "order", descending: bool = False) -> List[ClassifiedRow]:
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key}")
    getter = SORT_KEYS[key]
    sign = -1 if descending else 1

    def _cmp(left: ClassifiedRow, right: ClassifiedRow) -> int:
        return sign * compare_values(getter(left.row), getter(right.row))

    return sorted(rows, key=cmp_to_key(_cmp))


def filter_rows(rows: Sequence[ClassifiedRow], only_diffs: bool = False) -> List[ClassifiedRow]:
    if not only_diffs:
        return list(rows)
    return [row for row in rows if row.has_diff]
