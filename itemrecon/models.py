from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

Scalar = Union[str, int, float]


class MatchMode(str, Enum):
    CODE = "code"
    CLASSIFICATION = "classification"
    DESCRIPTION = "description"
    LEFTOVER = "leftover"


class FieldState(str, Enum):
    OK = "ok"
    WARN = "warn"
    MISS = "miss"

    @property
    def rank(self) -> int:
        return {"ok": 0, "warn": 1, "miss": 2}[self.value]


COMPARED_FIELDS = ("classification", "description", "quantity", "unit", "value")


@dataclass
class CanonicalRow:
    key: str
    order: Scalar
    classification_code: str
    description: str
    quantity: Scalar
    unit: str
    value: Scalar
    internal_code: str = ""


@dataclass
class MergedRow:
    key: str
    order: Scalar
    classification_a: str = ""
    classification_b: str = ""
    description_a: str = ""
    description_b: str = ""
    quantity_a: Scalar = ""
    unit_a: str = ""
    quantity_b: Scalar = ""
    unit_b: str = ""
    value_a: Scalar = ""
    value_b: Scalar = ""
    code_a: str = ""
    code_b: str = ""
    match_mode: Optional[MatchMode] = None
    similarity: float = 0.0
    reasons: List[str] = field(default_factory=list)


@dataclass
class ClassifiedRow:
    row: MergedRow
    states: Dict[str, FieldState]
    severity: FieldState
    has_diff: bool


@dataclass
class FieldCounters:
    ok: int = 0
    warn: int = 0
    miss: int = 0

    @property
    def total(self) -> int:
        return self.ok + self.warn + self.miss


@dataclass
class SideSummary:
    currency: str
    value_total: Decimal
    with_value: int
    total_items: int
    quantity_by_unit: List[Tuple[str, Decimal]] = field(default_factory=list)


Config = Dict[str, Any]
