from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .models import CanonicalRow
from .normalize import first_token, normalize_code, normalize_text

LOGGER = logging.getLogger(__name__)


@dataclass
class RowIndex:
    """Lookup tables from a normalized key to row positions, in input order."""

    by_classification: Dict[str, List[int]] = field(default_factory=dict)
    by_first_token: Dict[str, List[int]] = field(default_factory=dict)
    by_code: Dict[str, List[int]] = field(default_factory=dict)

    def classification(self, key: str) -> List[int]:
        return self.by_classification.get(key, []) if key else []

    def first_token(self, key: str) -> List[int]:
        return self.by_first_token.get(key, []) if key else []

    def code(self, key: str) -> List[int]:
        return self.by_code.get(key, []) if key else []


def _add(table: Dict[str, List[int]], key: str, pos: int) -> None:
    if key:
        table.setdefault(key, []).append(pos)


def build_index(rows: Sequence[CanonicalRow]) -> RowIndex:
    index = RowIndex()
    for pos, row in enumerate(rows):
        _add(index.by_classification, normalize_text(row.classification_code), pos)
        _add(index.by_first_token, first_token(row.description), pos)
        _add(index.by_code, normalize_code(row.internal_code), pos)
    LOGGER.debug(
        "Indexed %d rows: %d classification, %d token, %d code keys",
        len(rows), len(index.by_classification), len(index.by_first_token), len(index.by_code),
    )
    return index
