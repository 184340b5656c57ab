import tempfile
import unittest
from pathlib import Path

import numpy as np

import _paths  # noqa: F401

from dimensions import DIM_DENSITY, DIM_VELOCITY, DIMLESS
from foam_ascii import (
    lookup_dimensioned_scalar,
    parse_field_payload,
    read_boundary_values,
    read_header,
    read_internal_field,
)
from foam_fixtures import foam_header, write_field


class TestFieldPayload(unittest.TestCase):
    def test_uniform_vector_and_scalar(self) -> None:
        U = parse_field_payload("uniform (1 2 3)", 4, where="U")
        self.assertEqual(U.shape, (4, 3))
        np.testing.assert_allclose(U[2], [1.0, 2.0, 3.0])
        p = parse_field_payload("uniform -1.5e-3", 2, where="p")
        np.testing.assert_allclose(p, [-1.5e-3, -1.5e-3])

    def test_nonuniform_lists(self) -> None:
        U = parse_field_payload("nonuniform List<vector> 2\n(\n(1 0 0)\n(0 2 0)\n)\n", 2, where="U")
        np.testing.assert_allclose(U, [[1, 0, 0], [0, 2, 0]])
        s = parse_field_payload("nonuniform List<scalar> 3(1 2 3)", 3, where="s")
        np.testing.assert_allclose(s, [1, 2, 3])
        compact = parse_field_payload("nonuniform List<scalar> 3{4.5}", 3, where="s")
        np.testing.assert_allclose(compact, [4.5, 4.5, 4.5])
        empty = parse_field_payload("nonuniform List<scalar> 0()", 0, where="s")
        self.assertEqual(empty.shape, (0,))

    def test_length_mismatch_is_an_error(self) -> None:
        with self.assertRaises(ValueError):
            parse_field_payload("nonuniform List<scalar> 3(1 2 3)", 4, where="s")
        with self.assertRaises(ValueError):
            parse_field_payload("nonuniform List<scalar> 3(1 2)", 3, where="s")
        with self.assertRaises(ValueError):
            parse_field_payload("nonuniform List<tensor> 1((1 0 0 0 1 0 0 0 1))", 1, where="T")


class TestDimensionedLookup(unittest.TestCase):
    def _dict(self, entry: str) -> str:
        return foam_header("dictionary", "transportProperties") + f"\n{entry}\n\nsub\n{{\n    rho 5;\n}}\n"

    def test_three_spellings(self) -> None:
        a = lookup_dimensioned_scalar(self._dict("rho rho [1 -3 0 0 0 0 0] 1.2;"), "rho")
        b = lookup_dimensioned_scalar(self._dict("rho [1 -3 0 0 0 0 0] 1.2;"), "rho")
        c = lookup_dimensioned_scalar(self._dict("rho 1.2;"), "rho")
        self.assertEqual(a.value, 1.2)
        self.assertEqual(b.value, 1.2)
        self.assertEqual(c.value, 1.2)
        self.assertEqual(a.dimensions, DIM_DENSITY)
        self.assertEqual(b.dimensions, DIM_DENSITY)
        self.assertEqual(c.dimensions, DIMLESS)

    def test_nested_entries_are_not_top_level(self) -> None:
        with self.assertRaises(KeyError):
            lookup_dimensioned_scalar(self._dict("nu [0 2 -1 0 0 0 0] 1e-5;"), "rho")

    def test_comments_are_ignored(self) -> None:
        text = self._dict("// rho 7;\n/* rho 8; */\nrho [1 -3 0 0 0 0 0] 3; // trailing")
        self.assertEqual(lookup_dimensioned_scalar(text, "rho").value, 3.0)


class TestFieldFiles(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_header_and_internal_field(self) -> None:
        path = write_field(self.tmp, "U", (1.0, 0.0, 0.0), dims="[0 1 -1 0 0 0 0]")
        header = read_header(path)
        self.assertIsNotNone(header)
        self.assertEqual(header["class"], "volVectorField")
        self.assertEqual(header["object"], "U")
        dims, values = read_internal_field(path, 3)
        self.assertEqual(dims, DIM_VELOCITY)
        self.assertEqual(values.shape, (3, 3))

    def test_missing_file_has_no_header(self) -> None:
        self.assertIsNone(read_header(self.tmp / "rho"))

    def test_gzip_field(self) -> None:
        write_field(self.tmp, "rho", np.array([1.0, 2.0]), dims="[1 -3 0 0 0 0 0]", compress=True)
        self.assertIsNotNone(read_header(self.tmp / "rho"))
        dims, values = read_internal_field(self.tmp / "rho", 2)
        self.assertEqual(dims, DIM_DENSITY)
        np.testing.assert_allclose(values, [1.0, 2.0])

    def test_binary_format_is_rejected(self) -> None:
        path = write_field(self.tmp, "p", 0.0, dims="[0 2 -2 0 0 0 0]")
        path.write_text(path.read_text(encoding="utf-8").replace("format      ascii", "format      binary"), encoding="utf-8")
        with self.assertRaises(ValueError):
            read_internal_field(path, 1)

    def test_boundary_values(self) -> None:
        boundary = (
            "    inlet\n    {\n        type fixedValue;\n        value uniform 2;\n    }\n"
            "    \"(top|bottom)\"\n    {\n        type calculated;\n        value uniform -1;\n    }\n"
            "    frontAndBack\n    {\n        type empty;\n    }\n"
        )
        path = write_field(self.tmp, "phi", np.zeros(1), dims="[0 3 -1 0 0 0 0]", cls="surfaceScalarField", boundary=boundary)
        out = read_boundary_values(path, {"inlet": 2, "top": 1, "bottom": 3, "frontAndBack": 4})
        self.assertEqual(sorted(out), ["bottom", "inlet", "top"])
        np.testing.assert_allclose(out["inlet"], [2.0, 2.0])
        np.testing.assert_allclose(out["bottom"], [-1.0, -1.0, -1.0])


if __name__ == "__main__":
    unittest.main()
