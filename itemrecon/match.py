from __future__ import annotations

import logging
from decimal import Decimal
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

from rapidfuzz import fuzz

from .index import RowIndex, build_index
from .models import CanonicalRow, MatchMode, MergedRow
from .normalize import canonical_description, first_token, normalize_code, normalize_text, to_number, tokenize

LOGGER = logging.getLogger(__name__)


class CandidateScore(NamedTuple):
    """Priority tuple for one candidate: classification > code > tokens > deltas."""

    classification: int
    code: int
    token0: int
    token1: int
    token2: int
    quantity_delta: Decimal
    value_delta: Decimal


def outranks(candidate: CandidateScore, incumbent: Optional[CandidateScore]) -> bool:
    """Lexicographic comparison; ties favour the incumbent."""
    if incumbent is None:
        return True
    return tuple(candidate) > tuple(incumbent)


def _same(a: str, b: str) -> int:
    return 1 if a and b and a == b else 0


def _token_at(tokens: List[str], pos: int) -> str:
    return tokens[pos] if pos < len(tokens) else ""


def score_candidate(src: CanonicalRow, dst: CanonicalRow) -> CandidateScore:
    src_tokens = tokenize(src.description)
    dst_tokens = tokenize(dst.description)
    return CandidateScore(
        classification=int(normalize_text(src.classification_code) == normalize_text(dst.classification_code)),
        code=_same(normalize_code(src.internal_code), normalize_code(dst.internal_code)),
        token0=_same(_token_at(src_tokens, 0), _token_at(dst_tokens, 0)),
        token1=_same(_token_at(src_tokens, 1), _token_at(dst_tokens, 1)),
        token2=_same(_token_at(src_tokens, 2), _token_at(dst_tokens, 2)),
        quantity_delta=-abs(to_number(src.quantity) - to_number(dst.quantity)),
        value_delta=-abs(to_number(src.value) - to_number(dst.value)),
    )


def match_mode_for(score: CandidateScore) -> MatchMode:
    if score.code:
        return MatchMode.CODE
    if score.classification:
        return MatchMode.CLASSIFICATION
    return MatchMode.DESCRIPTION


def description_similarity(a: str, b: str) -> float:
    if not a or not b:
        return 0.0
    return fuzz.token_sort_ratio(canonical_description(a), canonical_description(b))


def _reasons(score: CandidateScore, fallback: bool) -> List[str]:
    reasons: List[str] = []
    if score.classification:
        reasons.append("classification")
    if score.code:
        reasons.append("code")
    shared = score.token0 + score.token1 + score.token2
    if shared:
        reasons.append(f"tokens {shared}/3")
    if fallback:
        reasons.append("fallback pool")
    return reasons


def _unique(*lists: Iterable[int]) -> List[int]:
    seen = set()
    out: List[int] = []
    for positions in lists:
        for pos in positions:
            if pos not in seen:
                seen.add(pos)
                out.append(pos)
    return out


def _candidate_pool(src: CanonicalRow, index: RowIndex, consumed: List[bool]) -> Tuple[List[int], bool]:
    pool = _unique(
        index.classification(normalize_text(src.classification_code)),
        index.code(normalize_code(src.internal_code)),
        index.first_token(first_token(src.description)),
    )
    pool = [pos for pos in pool if not consumed[pos]]
    if pool:
        return pool, False
    return [pos for pos, used in enumerate(consumed) if not used], True


def _merged(src: Optional[CanonicalRow], dst: Optional[CanonicalRow], mode: MatchMode) -> MergedRow:
    key = (src.key if src else "") or (dst.key if dst else "")
    order = src.order if src is not None else (dst.order if dst is not None else "")
    row = MergedRow(key=key, order=order, match_mode=mode)
    if src is not None:
        row.classification_a = src.classification_code
        row.description_a = src.description
        row.quantity_a = src.quantity
        row.unit_a = src.unit
        row.value_a = src.value
        row.code_a = src.internal_code
    if dst is not None:
        row.classification_b = dst.classification_code
        row.description_b = dst.description
        row.quantity_b = dst.quantity
        row.unit_b = dst.unit
        row.value_b = dst.value
        row.code_b = dst.internal_code
    return row


def match_rows(primary: Sequence[CanonicalRow], secondary: Sequence[CanonicalRow]) -> List[MergedRow]:
    """Greedily pair each primary row with its best unused secondary row.

    Every primary row yields one merged row; secondary rows that were never
    picked follow as leftovers, in their original order.
    """
    index = build_index(secondary)
    consumed = [False] * len(secondary)
    results: List[MergedRow] = []
    counts = {mode: 0 for mode in MatchMode}

    for src in primary:
        pool, fallback = _candidate_pool(src, index, consumed)
        best_pos: Optional[int] = None
        best_score: Optional[CandidateScore] = None
        for pos in pool:
            score = score_candidate(src, secondary[pos])
            if outranks(score, best_score):
                best_pos = pos
                best_score = score

        if best_pos is None or best_score is None:
            row = _merged(src, None, MatchMode.DESCRIPTION)
            row.reasons = ["no candidate"]
        else:
            consumed[best_pos] = True
            dst = secondary[best_pos]
            row = _merged(src, dst, match_mode_for(best_score))
            row.reasons = _reasons(best_score, fallback)
            row.similarity = description_similarity(src.description, dst.description)
            LOGGER.debug("Matched %s -> %s (%s)", src.key, dst.key, row.match_mode.value)
        counts[row.match_mode] += 1
        results.append(row)

    for pos, dst in enumerate(secondary):
        if consumed[pos]:
            continue
        row = _merged(None, dst, MatchMode.LEFTOVER)
        row.reasons = ["leftover"]
        counts[MatchMode.LEFTOVER] += 1
        results.append(row)

    LOGGER.info(
        "Matched %d primary rows against %d secondary rows (%s)",
        len(primary), len(secondary), ", ".join(f"{mode.value}={n}" for mode, n in counts.items()),
    )
    return results
