import unittest

from itemrecon.models import ClassifiedRow, FieldState, MergedRow
from itemrecon.view import filter_rows, sort_rows


def _item(order, quantity="", description="", has_diff=False):
    row = MergedRow(key=str(order), order=order, quantity_a=quantity, description_a=description)
    severity = FieldState.WARN if has_diff else FieldState.OK
    return ClassifiedRow(row=row, states={}, severity=severity, has_diff=has_diff)


class ViewTests(unittest.TestCase):
    def test_numeric_sort(self):
        rows = [_item(1, "10"), _item(2, "9"), _item(3, "100,5")]
        self.assertEqual([r.row.order for r in sort_rows(rows, "quantity_a")], [2, 1, 3])
        self.assertEqual([r.row.order for r in sort_rows(rows, "quantity_a", descending=True)], [3, 1, 2])

    def test_text_sort_is_case_and_accent_insensitive(self):
        rows = [_item(1, description="beta"), _item(2, description="Álpha"), _item(3, description="gamma")]
        self.assertEqual([r.row.order for r in sort_rows(rows, "description_a")], [2, 1, 3])

    def test_sort_is_stable_for_equal_values(self):
        rows = [_item(1, "5"), _item(2, "5"), _item(3, "1")]
        self.assertEqual([r.row.order for r in sort_rows(rows, "quantity_a")], [3, 1, 2])

    def test_unknown_sort_key(self):
        with self.assertRaises(ValueError):
            sort_rows([], "colour")

    def test_filter_only_diffs(self):
        rows = [_item(1), _item(2, has_diff=True)]
        self.assertEqual(len(filter_rows(rows)), 2)
        self.assertEqual([r.row.order for r in filter_rows(rows, only_diffs=True)], [2])


if __name__ == "__main__":
    unittest.main()
