from __future__ import annotations

import unittest

from shipquote.utils.text import collapse_whitespace, fold_text, mask_spans
from shipquote.utils.units import normalize_length, normalize_weight


class UnitConversionTests(unittest.TestCase):
    def test_lengths_convert_to_inches(self) -> None:
        self.assertAlmostEqual(normalize_length(100, "cm"), 39.37007874)
        self.assertAlmostEqual(normalize_length(30, "centímetros"), 11.811023622)
        self.assertEqual(normalize_length(12, "in"), 12)
        self.assertEqual(normalize_length(12, '"'), 12)

    def test_weights_convert_to_pounds(self) -> None:
        self.assertAlmostEqual(normalize_weight(70, "kg"), 154.323583526)
        self.assertAlmostEqual(normalize_weight(5, "Kilos"), 11.023113109)
        self.assertEqual(normalize_weight(20, "lbs"), 20)
        self.assertEqual(normalize_weight(3, "libras"), 3)

    def test_missing_or_unknown_unit_is_identity(self) -> None:
        for unit in (None, "", "furlongs"):
            with self.subTest(unit=unit):
                self.assertEqual(normalize_length(7.5, unit), 7.5)
                self.assertEqual(normalize_weight(7.5, unit), 7.5)


class TextHelperTests(unittest.TestCase):
    def test_fold_text_keeps_length(self) -> None:
        for text in ("Bogotá", "SÃO PAULO", "Ciudad de México", "50×40×30"):
            with self.subTest(text=text):
                self.assertEqual(len(fold_text(text)), len(text))

    def test_fold_text_strips_accents_and_case(self) -> None:
        self.assertEqual(fold_text("Bogotá"), "bogota")
        self.assertEqual(fold_text("MÉXICO"), "mexico")

    def test_mask_spans(self) -> None:
        self.assertEqual(mask_spans("ship 24x10x10 now", [(5, 13)]), "ship " + " " * 8 + " now")
        self.assertEqual(mask_spans("abc", [(2, 10)]), "ab ")

    def test_collapse_whitespace(self) -> None:
        self.assertEqual(collapse_whitespace("  Los   Angeles \n"), "Los Angeles")


if __name__ == "__main__":
    unittest.main()
