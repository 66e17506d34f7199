from __future__ import annotations

import logging
from typing import Iterable, List, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from .models import ClassifiedRow, FieldCounters, FieldState, MergedRow, SideSummary
from .normalize import format_currency
from .view import filter_rows

LOGGER = logging.getLogger(__name__)

COMPARISON_HEADERS = [
    "Order", "ClassificationCode_A", "ClassificationCode_B", "Description_A", "Description_B",
    "InternalCode_A", "InternalCode_B", "Quantity_A", "Unit_A", "Quantity_B", "Unit_B",
    "Value_A", "Value_B", "RowSeverity",
]
MATCHING_HEADERS = ["Order", "Key", "InternalCode_A", "InternalCode_B", "Match_Mode", "Similarity", "Reasons"]
SUMMARY_HEADERS = ["Metric", "CO", "FC"]

STATE_FILLS = {
    FieldState.OK: PatternFill("solid", fgColor="C6EFCE"),
    FieldState.WARN: PatternFill("solid", fgColor="FFEB9C"),
    FieldState.MISS: PatternFill("solid", fgColor="FFC7CE"),
}


def _autosize(ws: Worksheet, max_width: int = 60) -> None:
    for i, col in enumerate(ws.columns, start=1):
        max_len = max((len(str(c.value)) for c in col if c.value is not None), default=0)
        ws.column_dimensions[get_column_letter(i)].width = min(max_len + 2, max_width)


def _format(ws: Worksheet, headers: List[str]) -> None:
    ws.freeze_panes = "A2"
    ws.auto_filter.ref = f"A1:{get_column_letter(len(headers))}1"
    for cell in ws[1]:
        cell.font = Font(bold=True)
    wrap_cols = {"Description_A", "Description_B", "Reasons"}
    for idx, header in enumerate(headers, start=1):
        if header in wrap_cols:
            for row in ws.iter_rows(min_row=2, min_col=idx, max_col=idx):
                row[0].alignment = Alignment(wrap_text=True, vertical="top")
    _autosize(ws)


def comparison_row(item: ClassifiedRow) -> list:
    r = item.row
    return [
        r.order, r.classification_a, r.classification_b, r.description_a, r.description_b,
        r.code_a, r.code_b, r.quantity_a, r.unit_a, r.quantity_b, r.unit_b,
        r.value_a, r.value_b, item.severity.value,
    ]


def _side_lines(label: str, a: SideSummary, b: SideSummary) -> List[list]:
    lines = [
        [f"{label} value total", format_currency(a.value_total, a.currency), format_currency(b.value_total, b.currency)],
        [f"{label} items with value", f"{a.with_value}/{a.total_items}", f"{b.with_value}/{b.total_items}"],
    ]
    units = sorted({unit for unit, _ in a.quantity_by_unit} | {unit for unit, _ in b.quantity_by_unit})
    qty_a = dict(a.quantity_by_unit)
    qty_b = dict(b.quantity_by_unit)
    for unit in units:
        lines.append([f"Quantity {unit}", str(qty_a.get(unit, "")), str(qty_b.get(unit, ""))])
    return lines


def write_workbook(
    path: str,
    rows: Sequence[ClassifiedRow],
    merged: Iterable[MergedRow],
    counters: FieldCounters,
    summary_a: SideSummary,
    summary_b: SideSummary,
    only_diffs: bool = False,
) -> int:
    wb = Workbook()
    cmp_ws = wb.active
    cmp_ws.title = "Comparison"
    cmp_ws.append(COMPARISON_HEADERS)
    exported = filter_rows(rows, only_diffs)
    severity_col = len(COMPARISON_HEADERS)
    for item in exported:
        cmp_ws.append(comparison_row(item))
        cmp_ws.cell(row=cmp_ws.max_row, column=severity_col).fill = STATE_FILLS[item.severity]

    matching = wb.create_sheet("Matching")
    matching.append(MATCHING_HEADERS)
    for row in merged:
        matching.append([
            row.order, row.key, row.code_a, row.code_b,
            row.match_mode.value if row.match_mode else "",
            round(row.similarity, 1), "; ".join(row.reasons),
        ])

    summary = wb.create_sheet("Summary")
    summary.append(SUMMARY_HEADERS)
    summary.append(["Fields ok", counters.ok, ""])
    summary.append(["Fields divergent", counters.warn, ""])
    summary.append(["Fields missing", counters.miss, ""])
    summary.append(["Fields evaluated", counters.total, ""])
    for line in _side_lines("Document", summary_a, summary_b):
        summary.append(line)

    _format(cmp_ws, COMPARISON_HEADERS)
    _format(matching, MATCHING_HEADERS)
    _format(summary, SUMMARY_HEADERS)
    wb.save(path)
    LOGGER.debug("Exported %d of %d rows to %s", len(exported), len(rows), path)
    return len(exported)
