import unittest
from decimal import Decimal

from itemrecon.match import CandidateScore, match_rows, outranks, score_candidate
from itemrecon.models import CanonicalRow, MatchMode


class MatchTests(unittest.TestCase):
    def _row(self, key, ncm="", desc="", code="", qty="", value=""):
        return CanonicalRow(
            key=key,
            order=key,
            classification_code=ncm,
            description=desc,
            quantity=qty,
            unit="UN",
            value=value,
            internal_code=code,
        )

    def test_code_beats_description_similarity(self):
        src = self._row("a", ncm="1111", desc="123 Parafuso sextavado", code="123")
        same_desc = self._row("b0", ncm="1111", desc="123 Parafuso sextavado")
        same_code = self._row("b1", ncm="1111", desc="Arruela lisa", code="0123")
        out = match_rows([src], [same_desc, same_code])
        self.assertEqual(out[0].key, "a")
        self.assertEqual(out[0].description_b, "Arruela lisa")
        self.assertEqual(out[0].match_mode, MatchMode.CODE)
        self.assertEqual(out[1].match_mode, MatchMode.LEFTOVER)
        self.assertEqual(out[1].description_b, "123 Parafuso sextavado")

    def test_leftovers_follow_matched_rows(self):
        primary = [self._row(f"a{i}", ncm=f"{i}000") for i in range(3)]
        secondary = [self._row(f"b{i}", ncm=f"{i}000") for i in range(5)]
        out = match_rows(primary, secondary)
        self.assertEqual(len(out), 5)
        leftovers = [row for row in out if row.match_mode is MatchMode.LEFTOVER]
        self.assertEqual([row.key for row in leftovers], ["b3", "b4"])
        for row in leftovers:
            self.assertEqual((row.description_a, row.classification_a, row.code_a), ("", "", ""))

    def test_every_secondary_row_used_once(self):
        primary = [self._row("a0", ncm="1", desc="Porca"), self._row("a1", ncm="1", desc="Porca")]
        secondary = [self._row("b0", ncm="1", desc="Porca"), self._row("b1", ncm="1", desc="Porca"),
                     self._row("b2", ncm="2", desc="Anel")]
        out = match_rows(primary, secondary)
        self.assertEqual(len(out), 3)
        self.assertEqual(sorted(row.key for row in out), ["a0", "a1", "b2"])
        self.assertEqual([row.classification_b for row in out], ["1", "1", "2"])

    def test_tie_keeps_earliest_candidate(self):
        src = self._row("a", ncm="5", desc="Porca")
        first = self._row("b0", ncm="5", desc="Porca", qty="1")
        second = self._row("b1", ncm="5", desc="Porca", qty="1")
        out = match_rows([src], [first, second])
        self.assertEqual(out[0].quantity_b, "1")
        self.assertEqual(out[1].key, "b1")

    def test_quantity_delta_breaks_ties(self):
        src = self._row("a", ncm="5", desc="Porca", qty="5")
        far = self._row("b0", ncm="5", desc="Porca", qty="10")
        near = self._row("b1", ncm="5", desc="Porca", qty="5,0")
        out = match_rows([src], [far, near])
        self.assertEqual(out[0].quantity_b, "5,0")
        self.assertEqual(out[0].match_mode, MatchMode.CLASSIFICATION)

    def test_fallback_pool_when_no_key_is_shared(self):
        out = match_rows([self._row("a", ncm="1", desc="Porca")], [self._row("b", ncm="2", desc="Anel")])
        self.assertEqual(out[0].description_b, "Anel")
        self.assertEqual(out[0].match_mode, MatchMode.DESCRIPTION)
        self.assertIn("fallback pool", out[0].reasons)

    def test_unmatched_primary_without_secondary(self):
        out = match_rows([self._row("a", ncm="1", desc="Porca")], [])
        self.assertEqual(len(out), 1)
        self.assertEqual(out[0].match_mode, MatchMode.DESCRIPTION)
        self.assertEqual(out[0].description_b, "")
        self.assertEqual(out[0].reasons, ["no candidate"])

    def test_score_tuple_ordering(self):
        src = self._row("a", ncm="1", desc="Porca sextavada M8", code="9", qty="2", value="3")
        dst = self._row("b", ncm="1", desc="Porca sextavada M10", code="9", qty="1", value="3")
        score = score_candidate(src, dst)
        self.assertEqual(tuple(score)[:5], (1, 1, 1, 1, 0))
        self.assertEqual(score.quantity_delta, Decimal("-1"))
        self.assertEqual(score.value_delta, 0)

    def test_outranks_is_strict(self):
        low = CandidateScore(1, 0, 1, 1, 1, Decimal(0), Decimal(0))
        high = CandidateScore(1, 1, 0, 0, 0, Decimal(-50), Decimal(-50))
        self.assertTrue(outranks(high, low))
        self.assertFalse(outranks(low, high))
        self.assertFalse(outranks(low, low))
        self.assertTrue(outranks(low, None))

    def test_blank_classification_codes_count_as_equal(self):
        src = self._row("a", desc="Parafuso zincado")
        other_code = self._row("b0", ncm="7318", desc="Parafuso inox")
        blank = self._row("b1", desc="Parafuso inox")
        self.assertEqual(score_candidate(src, blank).classification, 1)
        self.assertEqual(score_candidate(src, other_code).classification, 0)
        out = match_rows([src], [other_code, blank])
        self.assertEqual(out[0].classification_b, "")
        self.assertEqual(out[0].match_mode, MatchMode.CLASSIFICATION)
        self.assertEqual(out[1].key, "b0")

    def test_blank_internal_codes_do_not_count_as_equal(self):
        src = self._row("a", ncm="1", desc="Porca")
        dst = self._row("b", ncm="2", desc="Porca")
        self.assertEqual(score_candidate(src, dst).code, 0)
        self.assertEqual(match_rows([src], [dst])[0].match_mode, MatchMode.DESCRIPTION)


if __name__ == "__main__":
    unittest.main()
