from __future__ import annotations

import unittest

from shipquote.parsing.location_extractor import clean_location, extract_locations


class LocationExtractorTests(unittest.TestCase):
    def assertLocations(self, text: str, origin: str, destination: str) -> None:
        found = extract_locations(text)
        self.assertEqual((found.origin, found.destination), (origin, destination), text)

    def test_from_to_with_zip_codes(self) -> None:
        self.assertLocations("Ship a 24x10x10 box weighing 20lbs from 33142 to 90210", "33142", "90210")

    def test_reversed_to_from_order(self) -> None:
        self.assertLocations("Quote to ship 3 boxes to Dallas from Miami", "Miami", "Dallas")

    def test_spanish_desde_hasta(self) -> None:
        self.assertLocations(
            "Enviar caja 30x20x10 cm peso 5 kilos desde Miami hasta Bogotá", "Miami", "Bogotá"
        )

    def test_spanish_desde_a(self) -> None:
        self.assertLocations("Cotizar 20x20x20 desde Miami a Bogotá", "Miami", "Bogotá")

    def test_spanish_de_a(self) -> None:
        self.assertLocations("Caja 10x10x10 de Caracas a Madrid", "Caracas", "Madrid")

    def test_zip_fallback(self) -> None:
        self.assertLocations("Need rates 33142 90210 for 12x12x12 5 lb", "33142", "90210")

    def test_bare_split_fallback(self) -> None:
        self.assertLocations("Miami a Bogotá, caja 20x20x20 15 kg", "Miami", "Bogotá")

    def test_abbreviations_survive(self) -> None:
        self.assertLocations("Ship 12x12x12 5 lb from St. Louis to Chicago.", "St. Louis", "Chicago")

    def test_capture_stops_at_filler_words(self) -> None:
        self.assertLocations("from Miami to Dallas by ground please", "Miami", "Dallas")

    def test_commas_stay_inside_a_location(self) -> None:
        self.assertLocations("12x12x12 from Miami, FL to Toronto, Canada", "Miami, FL", "Toronto, Canada")

    def test_leading_article_is_dropped(self) -> None:
        self.assertLocations("Box 10x10x10 to the Bronx from Miami", "Miami", "Bronx")

    def test_partial_result_reports_missing(self) -> None:
        found = extract_locations("Box 12x12x12 from Miami")
        self.assertEqual(found.origin, "Miami")
        self.assertEqual(found.missing(), ["destination"])

    def test_direction_keyword_is_never_a_location(self) -> None:
        self.assertLocations("0x0x0 0lb from a to b", "", "b")
        self.assertLocations("to to to", "", "")
        self.assertLocations("from from to Dallas", "", "Dallas")

    def test_empty_text(self) -> None:
        self.assertEqual(extract_locations("").missing(), ["origin", "destination"])


class CleanLocationTests(unittest.TestCase):
    def test_verb_phrases_are_rejected(self) -> None:
        self.assertIsNone(clean_location("ship 3 boxes"))
        self.assertIsNone(clean_location("  enviar una caja "))

    def test_lone_article_is_rejected(self) -> None:
        self.assertIsNone(clean_location("the "))
        self.assertIsNone(clean_location(" , "))

    def test_bare_direction_words_are_rejected(self) -> None:
        for raw in ("from", " to ", "desde", "de hasta"):
            with self.subTest(raw=raw):
                self.assertIsNone(clean_location(raw))
        self.assertEqual(clean_location("de Miami"), "Miami")

    def test_sentence_period_is_trimmed(self) -> None:
        self.assertEqual(clean_location("Dallas, TX."), "Dallas, TX")
        self.assertEqual(clean_location("Washington D.C."), "Washington D.C.")


if __name__ == "__main__":
    unittest.main()
