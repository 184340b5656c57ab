import unittest

import _paths  # noqa: F401

from dimensions import DIM_DENSITY, DIM_ENERGY, DIM_VELOCITY, DIM_VOLUME, DIMLESS, DimensionSet, parse_dimensions


class TestDimensionSet(unittest.TestCase):
    def test_kinetic_energy_product(self) -> None:
        product = DIM_VELOCITY * DIM_VELOCITY * DIM_DENSITY * DIM_VOLUME
        self.assertEqual(product, DIM_ENERGY)
        self.assertEqual(str(product), "[1 2 -2 0 0 0 0]")

    def test_dimensionless_density_breaks_the_product(self) -> None:
        product = DIM_VELOCITY**2 * DIMLESS * DIM_VOLUME
        self.assertNotEqual(product, DIM_ENERGY)
        self.assertEqual(str(product), "[0 5 -2 0 0 0 0]")

    def test_parse_seven_and_legacy_five(self) -> None:
        self.assertEqual(parse_dimensions("dimensions [0 1 -1 0 0 0 0];"), DIM_VELOCITY)
        self.assertEqual(parse_dimensions("[1 -3 0 0 0]"), DIM_DENSITY)
        self.assertTrue(parse_dimensions("[0 0 0 0 0 0 0]").dimensionless())

    def test_parse_rejects_garbage(self) -> None:
        with self.assertRaises(ValueError):
            parse_dimensions("no brackets here")
        with self.assertRaises(ValueError):
            parse_dimensions("[kg m^-3]")
        with self.assertRaises(ValueError):
            DimensionSet((1.0, 2.0, 3.0))

    def test_division_and_no_negative_zero(self) -> None:
        self.assertEqual(str(DIM_ENERGY / DIM_ENERGY), "[0 0 0 0 0 0 0]")
        self.assertEqual(str(DIMLESS**-1), "[0 0 0 0 0 0 0]")


if __name__ == "__main__":
    unittest.main()
