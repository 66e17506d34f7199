import unittest
from decimal import Decimal

from itemrecon.models import CanonicalRow, ClassifiedRow, FieldState, MergedRow
from itemrecon.summary import count_states, normalize_unit, payload_currency, summarize_side


def _canonical(qty, unit, value):
    return CanonicalRow(key="k", order="", classification_code="", description="",
                        quantity=qty, unit=unit, value=value)


def _classified(*states):
    names = ("classification", "description", "quantity", "unit", "value")
    mapping = dict(zip(names, states))
    return ClassifiedRow(row=MergedRow(key="k", order=""), states=mapping,
                         severity=FieldState.OK, has_diff=False)


class SummaryTests(unittest.TestCase):
    def test_count_states(self):
        ok, warn, miss = FieldState.OK, FieldState.WARN, FieldState.MISS
        counters = count_states([_classified(ok, ok, ok, ok, ok), _classified(ok, warn, miss, miss, ok)])
        self.assertEqual((counters.ok, counters.warn, counters.miss, counters.total), (7, 1, 2, 10))

    def test_normalize_unit_aliases(self):
        self.assertEqual(normalize_unit("und"), "UN")
        self.assertEqual(normalize_unit("Un."), "UN")
        self.assertEqual(normalize_unit("mts"), "M")
        self.assertEqual(normalize_unit("kilos"), "KG")
        self.assertEqual(normalize_unit("CX"), "CX")
        self.assertEqual(normalize_unit(None), "")

    def test_summarize_side_totals(self):
        rows = [
            _canonical("2", "UND", "10,50"),
            _canonical(3, "un", 4.5),
            _canonical("1,5", "kilo", ""),
            _canonical("", "KG", "1"),
        ]
        summary = summarize_side(rows, "USD")
        self.assertEqual(summary.value_total, Decimal("16.00"))
        self.assertEqual(summary.with_value, 3)
        self.assertEqual(summary.total_items, 4)
        self.assertEqual(summary.quantity_by_unit, [("KG", Decimal("1.5")), ("UN", Decimal("5"))])
        self.assertEqual(summary.currency, "USD")

    def test_payload_currency(self):
        self.assertEqual(payload_currency({"meta": {"currency": "USD"}}), "USD")
        self.assertEqual(payload_currency({"meta": {"moeda": " "}}), "BRL")
        self.assertEqual(payload_currency(None), "BRL")


if __name__ == "__main__":
    unittest.main()
