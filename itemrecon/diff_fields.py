from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .models import ClassifiedRow, FieldState, MatchMode, MergedRow
from .normalize import is_empty, normalize_code, normalize_text, to_number, tokenize

QUANTITY_TOLERANCE = Decimal("0.000001")
VALUE_TOLERANCE = Decimal("0.005")


def compare_text(a: Any, b: Any) -> FieldState:
    if is_empty(a) or is_empty(b):
        return FieldState.MISS
    return FieldState.OK if normalize_text(a) == normalize_text(b) else FieldState.WARN


def compare_code(a: Any, b: Any) -> FieldState:
    if is_empty(a) or is_empty(b):
        return FieldState.MISS
    return FieldState.OK if normalize_code(a) == normalize_code(b) else FieldState.WARN


def compare_unit(a: Any, b: Any) -> FieldState:
    return compare_text(
        None if a is None else str(a).replace(".", ""),
        None if b is None else str(b).replace(".", ""),
    )


def compare_number(a: Any, b: Any, tolerance: Decimal) -> FieldState:
    if is_empty(a) or is_empty(b):
        return FieldState.MISS
    return FieldState.OK if abs(to_number(a) - to_number(b)) <= tolerance else FieldState.WARN


def compare_description(row: MergedRow) -> FieldState:
    if row.match_mode is MatchMode.CODE:
        return compare_code(row.code_a, row.code_b)
    tokens_a = tokenize(row.description_a)
    tokens_b = tokenize(row.description_b)
    if not tokens_a or not tokens_b:
        return FieldState.MISS
    if len(tokens_a) > 1 and tokens_a[:2] == tokens_b[:2]:
        return FieldState.OK
    return FieldState.WARN


def worst_state(states: Iterable[FieldState]) -> FieldState:
    worst = FieldState.OK
    for state in states:
        if state.rank > worst.rank:
            worst = state
    return worst


def classify_row(
    row: MergedRow,
    quantity_tolerance: Decimal = QUANTITY_TOLERANCE,
    value_tolerance: Decimal = VALUE_TOLERANCE,
) -> ClassifiedRow:
    states: Dict[str, FieldState] = {
        "classification": compare_text(row.classification_a, row.classification_b),
        "description": compare_description(row),
        "quantity": compare_number(row.quantity_a, row.quantity_b, quantity_tolerance),
        "unit": compare_unit(row.unit_a, row.unit_b),
        "value": compare_number(row.value_a, row.value_b, value_tolerance),
    }
    return ClassifiedRow(
        row=row,
        states=states,
        severity=worst_state(states.values()),
        has_diff=any(state is not FieldState.OK for state in states.values()),
    )


def classify_rows(
    rows: Sequence[MergedRow],
    quantity_tolerance: Optional[Decimal] = None,
    value_tolerance: Optional[Decimal] = None,
) -> List[ClassifiedRow]:
    qty_tol = QUANTITY_TOLERANCE if quantity_tolerance is None else quantity_tolerance
    val_tol = VALUE_TOLERANCE if value_tolerance is None else value_tolerance
    return [classify_row(row, qty_tol, val_tol) for row in rows]
