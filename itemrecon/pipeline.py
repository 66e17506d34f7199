from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .diff_fields import QUANTITY_TOLERANCE, VALUE_TOLERANCE, classify_rows
from .group import group_rows
from .ingest import ingest_co, ingest_fc
from .match import match_rows
from .models import CanonicalRow, ClassifiedRow, Config, FieldCounters, MergedRow, SideSummary
from .summary import count_states, payload_currency, summarize_side

LOGGER = logging.getLogger(__name__)


@dataclass
class Comparison:
    rows_a: List[CanonicalRow]
    rows_b: List[CanonicalRow]
    merged: List[MergedRow]
    rows: List[ClassifiedRow]
    counters: FieldCounters
    summary_a: SideSummary
    summary_b: SideSummary


@dataclass(frozen=True)
class Tolerances:
    quantity: Decimal = QUANTITY_TOLERANCE
    value: Decimal = VALUE_TOLERANCE

    @classmethod
    def from_config(cls, config: Config) -> "Tolerances":
        diff_cfg = config.get("diff") or {}
        return cls(
            quantity=Decimal(str(diff_cfg.get("quantity_tolerance", QUANTITY_TOLERANCE))),
            value=Decimal(str(diff_cfg.get("value_tolerance", VALUE_TOLERANCE))),
        )


def payload_digest(*parts: Any) -> str:
    digest = hashlib.sha1()
    for part in parts:
        digest.update(json.dumps(part, sort_keys=True, default=str, ensure_ascii=False).encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


def compare_payloads(co: Any, fc: Any, tolerances: Optional[Tolerances] = None) -> Comparison:
    tolerances = tolerances or Tolerances()
    rows_a = ingest_co(co)
    rows_b = ingest_fc(fc)
    merged = match_rows(rows_a, rows_b)
    grouped = group_rows(merged)
    classified = classify_rows(grouped, tolerances.quantity, tolerances.value)
    counters = count_states(classified)
    LOGGER.info(
        "Compared %d display rows: ok=%d warn=%d miss=%d",
        len(classified), counters.ok, counters.warn, counters.miss,
    )
    return Comparison(
        rows_a=rows_a,
        rows_b=rows_b,
        merged=merged,
        rows=classified,
        counters=counters,
        summary_a=summarize_side(rows_a, payload_currency(co)),
        summary_b=summarize_side(rows_b, payload_currency(fc)),
    )


class ComparisonCache:
    """Memo of comparisons keyed by a digest of both payloads and tolerances.

    Entries are never invalidated; a changed payload hashes to a new key.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Comparison] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, co: Any, fc: Any, tolerances: Optional[Tolerances] = None) -> Comparison:
        tolerances = tolerances or Tolerances()
        key = payload_digest(co, fc, str(tolerances.quantity), str(tolerances.value))
        cached = self._entries.get(key)
        if cached is None:
            cached = compare_payloads(co, fc, tolerances)
            self._entries[key] = cached
        else:
            LOGGER.debug("Comparison cache hit %s", key[:10])
        return cached
