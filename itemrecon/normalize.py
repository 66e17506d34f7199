from __future__ import annotations

import logging
import re
import unicodedata
from decimal import Decimal, InvalidOperation
from typing import Any, List

LOGGER = logging.getLogger(__name__)

_LEADING_CODE = re.compile(r"^\s*0*[0-9]{5,}\b[:\-]?\s*")
_TOKEN_SPLIT = re.compile(r"[^A-Z0-9]+")
_LEADING_ZEROS = re.compile(r"^0+(?=[0-9])")
_NON_ALNUM = re.compile(r"[\W_]+")

ZERO = Decimal(0)


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(value: Any) -> str:
    """Upper-case, accent-free, whitespace-collapsed rendering of ``value``.

    ``None`` renders as the empty string so absent fields compare as empty.
    """
    text = "" if value is None else str(value)
    text = strip_accents(text)
    text = re.sub(r"\s+", " ", text)
    return text.strip().upper()


def drop_leading_zeros(text: str) -> str:
    return _LEADING_ZEROS.sub("", text)


def normalize_code(value: Any) -> str:
    text = "" if value is None else str(value).strip()
    return drop_leading_zeros(text).upper()


def normalize_classification(value: Any) -> str:
    text = "" if value is None else str(value)
    return _NON_ALNUM.sub("", text)


def strip_leading_code(text: str) -> str:
    return _LEADING_CODE.sub("", text or "")


def tokenize(description: Any) -> List[str]:
    if not description:
        return []
    text = normalize_text(strip_leading_code(str(description)))
    return [tok for tok in _TOKEN_SPLIT.split(text) if tok]


def first_token(description: Any) -> str:
    tokens = tokenize(description)
    return tokens[0] if tokens else ""


def canonical_description(description: Any) -> str:
    return normalize_text(strip_leading_code("" if description is None else str(description)))


def is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def to_number(value: Any) -> Decimal:
    """Read a quantity or amount, treating strings as pt-BR formatted.

    ``"1.234,56"`` reads as 1234.56. Anything unreadable is zero.
    """
    if isinstance(value, bool) or value is None:
        return ZERO
    if isinstance(value, (int, float)):
        number = Decimal(str(value))
    elif isinstance(value, Decimal):
        number = value
    elif isinstance(value, str):
        text = value.strip().replace(".", "").replace(",", ".", 1)
        if not text:
            return ZERO
        try:
            number = Decimal(text)
        except InvalidOperation:
            LOGGER.debug("Unreadable number %r", value)
            return ZERO
    else:
        return ZERO
    return number if number.is_finite() else ZERO


def format_currency(amount: Decimal, currency: str = "BRL") -> str:
    symbol = {"BRL": "R$", "USD": "US$", "EUR": "€"}.get(currency.upper(), currency.upper())
    quantized = abs(amount).quantize(Decimal("0.01"))
    whole, _, cents = f"{quantized:f}".partition(".")
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol} {'.'.join(groups)},{cents or '00'}"
