from __future__ import annotations

import unittest

from shipquote.parsing.parcel_extractor import (
    DEFAULT_WEIGHT_LB,
    extract_combined,
    extract_parcels,
    extract_positional,
)


def _tuples(parcels):
    return [(p.length, p.width, p.height, p.weight) for p in parcels]


class ParcelExtractorTests(unittest.TestCase):
    def test_single_box_with_weight(self) -> None:
        parcels = extract_parcels("Ship a 24x10x10 box weighing 20lbs from 33142 to 90210")
        self.assertEqual(_tuples(parcels), [(24, 10, 10, 20)])

    def test_three_self_contained_boxes(self) -> None:
        text = "Quote for 3 boxes: 50x50x50 50lb, 50x10x10 10lb, 50x10x10 10lb from Miami to Los Angeles"
        self.assertEqual(
            _tuples(extract_parcels(text)),
            [(50, 50, 50, 50), (50, 10, 10, 10), (50, 10, 10, 10)],
        )

    def test_separate_weight_list_is_paired_by_position(self) -> None:
        text = "two boxes 20x20x20 and 10x10x10. They weigh 15 lbs and 5 lbs"
        self.assertEqual(extract_combined(text), [])
        self.assertEqual(_tuples(extract_parcels(text)), [(20, 20, 20, 15), (10, 10, 10, 5)])

    def test_combined_matches_win_over_unweighted_boxes(self) -> None:
        text = "50x50x50 50lb, 50x10x10, 50x10x10 10lb"
        self.assertEqual(_tuples(extract_parcels(text)), [(50, 50, 50, 50), (50, 10, 10, 10)])

    def test_weight_in_same_clause_binds_to_nearest_box(self) -> None:
        text = "two boxes 20x20x20 and 10x10x10, 15 lbs and 5 lbs"
        self.assertEqual(_tuples(extract_parcels(text)), [(10, 10, 10, 15)])

    def test_single_stated_weight_applies_to_every_box(self) -> None:
        parcels = extract_parcels("Box 12x12x12 and box 10x10x10. Total weight: 8 lb")
        self.assertEqual([p.weight for p in parcels], [8, 8])

    def test_default_weight_when_none_stated(self) -> None:
        parcels = extract_parcels("Box 12x12x12 from Miami to Dallas")
        self.assertEqual(_tuples(parcels), [(12, 12, 12, DEFAULT_WEIGHT_LB)])

    def test_metric_units_are_converted(self) -> None:
        parcels = extract_parcels("caja de 30 por 20 por 10 cm, peso 5 kilos")
        self.assertEqual(len(parcels), 1)
        parcel = parcels[0]
        self.assertAlmostEqual(parcel.length, 11.811, places=3)
        self.assertAlmostEqual(parcel.width, 7.874, places=3)
        self.assertAlmostEqual(parcel.height, 3.937, places=3)
        self.assertAlmostEqual(parcel.weight, 11.023, places=3)

    def test_trailing_unit_applies_to_all_axes(self) -> None:
        parcel = extract_parcels("Box 100x80x70cm weighing 70kg")[0]
        self.assertAlmostEqual(parcel.length, 39.370, places=3)
        self.assertAlmostEqual(parcel.width, 31.496, places=3)
        self.assertAlmostEqual(parcel.height, 27.559, places=3)
        self.assertAlmostEqual(parcel.weight, 154.324, places=3)

    def test_decimal_values(self) -> None:
        self.assertEqual(_tuples(extract_parcels("10.5x8x4 in 2.5 lb")), [(10.5, 8, 4, 2.5)])

    def test_alternate_separators(self) -> None:
        for text in ("12 x 10 x 8, 5 lb", "12*10*8 5 lb", "12 by 10 by 8 weighing 5 lb", "12×10×8 5lbs"):
            with self.subTest(text=text):
                self.assertEqual(_tuples(extract_parcels(text)), [(12, 10, 8, 5)])

    def test_no_dimensions(self) -> None:
        self.assertEqual(extract_parcels("Ship 20 lbs from Miami to Dallas"), [])
        self.assertEqual(extract_parcels(""), [])

    def test_zero_dimension_is_discarded(self) -> None:
        self.assertEqual(extract_positional("0x10x10 5 lb"), [])

    def test_axis_is_never_read_as_weight(self) -> None:
        # "8 lb" must not come from the triple itself
        parcels = extract_positional("12x12x8 lb box")
        self.assertEqual([p.weight for p in parcels], [DEFAULT_WEIGHT_LB])


if __name__ == "__main__":
    unittest.main()
