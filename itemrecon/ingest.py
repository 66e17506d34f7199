from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from .models import CanonicalRow
from .normalize import drop_leading_zeros, normalize_classification

LOGGER = logging.getLogger(__name__)

DESCRIPTION_KEYS = ("produto", "nomeProduto", "descricao")
CODE_KEYS = ("codigoInterno", "codigo", "cod", "codigo_produto")
QUANTITY_KEYS = ("qtd", "quantidade", "quantity")
VALUE_KEYS = ("valor", "precoUnit", "preco_unit", "valorUnitario", "preco_total")


def _first_present(item: Dict[str, Any], keys: Iterable[str], default: Any = "") -> Any:
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return default


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def pick_description(item: Dict[str, Any]) -> str:
    for key in DESCRIPTION_KEYS:
        text = _text(item.get(key)).strip()
        if text:
            return text
    return ""


def pick_code(item: Dict[str, Any]) -> str:
    return drop_leading_zeros(_text(_first_present(item, CODE_KEYS)).strip())


def _nested_items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    for order_entry in data.get("ordens") or []:
        if not isinstance(order_entry, dict):
            continue
        for ncm_entry in order_entry.get("ncms") or []:
            if not isinstance(ncm_entry, dict):
                continue
            for item in ncm_entry.get("itens") or []:
                if not isinstance(item, dict):
                    continue
                merged = dict(item)
                if merged.get("ordem") is None and order_entry.get("ordem") is not None:
                    merged["ordem"] = order_entry["ordem"]
                if merged.get("ncm") is None and ncm_entry.get("ncm") is not None:
                    merged["ncm"] = ncm_entry["ncm"]
                items.append(merged)
    return items


def items_from_payload(payload: Any) -> List[Dict[str, Any]]:
    """Return the raw item dicts of a parse-service payload.

    Accepts ``{data: {itens|items: [...]}}``, the same without ``data``, and
    the nested ``{data: {ordens: [{ncms: [{itens: [...]}]}]}}`` layout.
    """
    if not isinstance(payload, dict):
        return []
    data = payload.get("data")
    if not isinstance(data, dict):
        data = payload
    flat = data.get("itens")
    if flat is None:
        flat = data.get("items")
    if isinstance(flat, list):
        return [item for item in flat if isinstance(item, dict)]
    if isinstance(data.get("ordens"), list):
        return _nested_items(data)
    return []


def row_key(item: Dict[str, Any]) -> str:
    code = pick_code(item)
    if code:
        return code
    order = _text(_first_present(item, ("ordem", "order"))).strip()
    ncm = normalize_classification(item.get("ncm"))
    by_order = "|".join(part for part in (order, ncm) if part)
    page = _text(item.get("page"))
    line = _text(item.get("y_line"))
    by_position = f"{page}-{line}" if page or line else ""
    explicit = item.get("id")
    base = _text(explicit) if explicit is not None else by_order
    return base or by_position or pick_description(item)[:24] or "row"


def _canonical(item: Dict[str, Any], prefix_code: bool) -> CanonicalRow:
    code = pick_code(item)
    name = pick_description(item)
    description = f"{code} {name}".strip() if prefix_code and code else name
    return CanonicalRow(
        key=row_key(item),
        order=_first_present(item, ("ordem",)),
        classification_code=normalize_classification(item.get("ncm")),
        description=description,
        quantity=_first_present(item, QUANTITY_KEYS),
        unit=_text(item.get("unidade")),
        value=_first_present(item, VALUE_KEYS),
        internal_code=code,
    )


def ingest_payload(payload: Any, prefix_code: bool = False, name: str = "payload") -> List[CanonicalRow]:
    rows = [_canonical(item, prefix_code) for item in items_from_payload(payload)]
    LOGGER.info("Ingested %s: %d rows", name, len(rows))
    return rows


def ingest_co(payload: Any) -> List[CanonicalRow]:
    return ingest_payload(payload, prefix_code=True, name="CO")


def ingest_fc(payload: Any) -> List[CanonicalRow]:
    return ingest_payload(payload, prefix_code=False, name="FC")
