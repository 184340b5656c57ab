from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Iterable, Protocol, Union

import numpy as np

from dimensions import DIM_ENERGY, DimensionedScalar, DimensionSet
from foam_case import Field


class CaseData(Protocol):
    def header_ok(self, name: str, time_name: str) -> bool: ...

    def read_field(self, name: str, time_name: str) -> Field: ...

    def cell_volumes(self) -> Field: ...

    def lookup_dimensioned(self, dict_name: str, key: str) -> DimensionedScalar: ...


Reducer = Callable[[Iterable[float]], float]


def global_sum(values: Iterable[float]) -> float:
    """
    Correctly rounded sum, so the result does not depend on how cells are
    ordered or split across processors.
    """
    return math.fsum(np.asarray(values, dtype=float).reshape(-1))


class DimensionMismatchError(RuntimeError):
    def __init__(self, product: DimensionSet, expected: DimensionSet, U: DimensionSet, rho: DimensionSet, V: DimensionSet) -> None:
        self.product = product
        self.expected = expected
        lines = [
            f"Incorrect dimensions of totalKE: {product} should be {expected}",
            "",
            "Dimensions in calculation are:",
            f"U   {U}",
            f"rho {rho}",
            f"V   {V}",
        ]
        super().__init__("\n".join(lines))


@dataclass(frozen=True)
class FieldDensity:
    """Per-cell density read at each time (compressible)."""

    name: str = "rho"
    check_dimensions: bool = False


@dataclass(frozen=True)
class ConstantDensity:
    """Dimensioned constant looked up from a constant/ dictionary (incompressible)."""

    dictionary: str = "transportProperties"
    key: str = "rho"
    check_dimensions: bool = True


DensitySource = Union[FieldDensity, ConstantDensity]


@dataclass(frozen=True)
class Density:
    dimensions: DimensionSet
    values: np.ndarray | float
    check_dimensions: bool


def resolve_density(case: CaseData, time_name: str, source: DensitySource) -> Density | None:
    """
    Load the density for `time_name`. Returns None (after a notice) when a
    per-cell density field is absent at that time.
    """
    if isinstance(source, FieldDensity):
        if not case.header_ok(source.name, time_name):
            print(f"    no {source.name} field\n")
            return None
        print(f"Reading field {source.name}\n")
        rho = case.read_field(source.name, time_name)
        return Density(rho.dimensions, rho.values, source.check_dimensions)
    if isinstance(source, ConstantDensity):
        print(f"Reading {source.dictionary} dictionary \n")
        rho_const = case.lookup_dimensioned(source.dictionary, source.key)
        return Density(rho_const.dimensions, float(rho_const.value), source.check_dimensions)
    raise TypeError(f"Unknown density source: {source!r}")


def kinetic_energy_density(U: np.ndarray, volumes: np.ndarray, rho: np.ndarray | float) -> np.ndarray:
    """
    Per-cell 0.5 * (U.U) * V * rho.
    """
    U = np.asarray(U, dtype=float)
    v = np.asarray(volumes, dtype=float).reshape(-1)
    if U.ndim != 2 or U.shape[1] != 3:
        raise ValueError(f"U must be (nCells, 3), got {U.shape}")
    if U.shape[0] != v.shape[0]:
        raise ValueError("volumes length mismatch")
    if isinstance(rho, np.ndarray) and rho.reshape(-1).shape[0] != v.shape[0]:
        raise ValueError("rho length mismatch")
    magsqr = np.einsum("ij,ij->i", U, U)
    return 0.5 * magsqr * v * (rho.reshape(-1) if isinstance(rho, np.ndarray) else float(rho))


def total_kinetic_energy(
    U: Field,
    volumes: Field,
    density: Density,
    *,
    reduce: Reducer = global_sum,
) -> DimensionedScalar:
    """
    Volume-integrated kinetic energy. When the density asks for it the
    dimensions of the integrand are checked against [1 2 -2 0 0 0 0].
    """
    value = reduce(kinetic_energy_density(U.values, volumes.values, density.values))
    total = DimensionedScalar("totalKE", DIM_ENERGY, float(value))
    if density.check_dimensions:
        product = U.dimensions * U.dimensions * density.dimensions * volumes.dimensions
        if product != total.dimensions:
            raise DimensionMismatchError(product, total.dimensions, U.dimensions, density.dimensions, volumes.dimensions)
    return total


def report_kinetic_energy(
    case: CaseData,
    time_name: str,
    U: Field,
    source: DensitySource,
    *,
    reduce: Reducer = global_sum,
) -> tuple[DimensionedScalar | None, Density | None]:
    density = resolve_density(case, time_name, source)
    if density is None:
        return None, None
    total = total_kinetic_energy(U, case.cell_volumes(), density, reduce=reduce)
    print(f"    Total kinetic energy: {total.value:g} [J]\n")
    return total, density
