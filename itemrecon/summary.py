from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, Sequence

from .models import COMPARED_FIELDS, CanonicalRow, ClassifiedRow, FieldCounters, FieldState, SideSummary
from .normalize import is_empty, to_number

UNIT_ALIASES = {
    "UND": "UN",
    "UNID": "UN",
    "UN.": "UN",
    "UNIDADE": "UN",
    "MTS": "M",
    "MT": "M",
    "KILO": "KG",
    "KILOS": "KG",
}

CURRENCY_KEYS = ("moeda", "currency", "moneda")


def count_states(rows: Iterable[ClassifiedRow]) -> FieldCounters:
    counters = FieldCounters()
    for row in rows:
        for name in COMPARED_FIELDS:
            state = row.states[name]
            if state is FieldState.OK:
                counters.ok += 1
            elif state is FieldState.WARN:
                counters.warn += 1
            else:
                counters.miss += 1
    return counters


def normalize_unit(unit: Any) -> str:
    text = "" if unit is None else str(unit).strip().upper()
    return UNIT_ALIASES.get(text, text)


def payload_currency(payload: Any, default: str = "BRL") -> str:
    meta = payload.get("meta") if isinstance(payload, dict) else None
    if isinstance(meta, dict):
        for key in CURRENCY_KEYS:
            value = meta.get(key)
            if value is not None and str(value).strip():
                return str(value).strip()
    return default


def summarize_side(rows: Sequence[CanonicalRow], currency: str = "BRL") -> SideSummary:
    total = Decimal(0)
    with_value = 0
    by_unit: Dict[str, Decimal] = {}
    for row in rows:
        if not is_empty(row.value):
            total += to_number(row.value)
            with_value += 1
        unit = normalize_unit(row.unit)
        if unit and not is_empty(row.quantity):
            by_unit[unit] = by_unit.get(unit, Decimal(0)) + to_number(row.quantity)
    return SideSummary(
        currency=currency,
        value_total=total,
        with_value=with_value,
        total_items=len(rows),
        quantity_by_unit=sorted(by_unit.items()),
    )
