from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, List, Sequence

from .models import MatchMode, MergedRow
from .normalize import canonical_description, is_empty, normalize_code, normalize_text

LOGGER = logging.getLogger(__name__)

BACKFILL_FIELDS = (
    "classification_a", "classification_b",
    "description_a", "description_b",
    "unit_a", "unit_b",
    "code_a", "code_b",
    "quantity_a", "quantity_b",
    "value_a", "value_b",
)


def code_gate(row: MergedRow) -> str:
    codes = sorted({code for code in (normalize_code(row.code_a), normalize_code(row.code_b)) if code})
    return f"|CODE:{'+'.join(codes)}" if codes else ""


def soft_key(row: MergedRow) -> str:
    name_a = canonical_description(row.description_a)
    ncm_a = normalize_text(row.classification_a)
    if name_a or ncm_a:
        return f"A:{name_a}|{ncm_a}{code_gate(row)}"
    # Leftovers key on the B side; see DESIGN.md on colliding fallback keys.
    name_b = canonical_description(row.description_b)
    ncm_b = normalize_text(row.classification_b)
    return f"B:{name_b}|{ncm_b}{code_gate(row)}"


def join_field(kept: object, incoming: object) -> str:
    kept_text = ("" if kept is None else str(kept)).strip()
    incoming_text = ("" if incoming is None else str(incoming)).strip()
    if not kept_text:
        return incoming_text
    if not incoming_text:
        return kept_text
    parts = [part.strip() for part in kept_text.split(",")]
    if incoming_text in parts:
        return kept_text
    return f"{kept_text}, {incoming_text}"


def absorb(kept: MergedRow, incoming: MergedRow) -> None:
    """Fold ``incoming`` into ``kept``; only empty fields of ``kept`` change."""
    kept.order = join_field(kept.order, incoming.order)
    kept.key = join_field(kept.key, incoming.key)
    for name in BACKFILL_FIELDS:
        if is_empty(getattr(kept, name)) and not is_empty(getattr(incoming, name)):
            setattr(kept, name, getattr(incoming, name))
    if kept.match_mode is None and incoming.match_mode is not None:
        kept.match_mode = incoming.match_mode
    for reason in incoming.reasons:
        if reason not in kept.reasons:
            kept.reasons.append(reason)


def group_rows(rows: Sequence[MergedRow]) -> List[MergedRow]:
    groups: Dict[str, MergedRow] = {}
    for row in rows:
        key = soft_key(row)
        found = groups.get(key)
        if found is None:
            groups[key] = replace(row, reasons=list(row.reasons))
            continue
        if row.match_mode is MatchMode.LEFTOVER and found.match_mode is MatchMode.LEFTOVER:
            LOGGER.debug("Leftover rows %s and %s share key %s", found.key, row.key, key)
        absorb(found, row)
    LOGGER.info("Grouped %d merged rows into %d display rows", len(rows), len(groups))
    return list(groups.values())
