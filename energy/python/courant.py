from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np

from foam_case import Field
from kinetic_energy import Density, Reducer, global_sum


class FluxData(Protocol):
    def header_ok(self, name: str, time_name: str) -> bool: ...

    def face_flux_sums(self, name: str, time_name: str) -> np.ndarray: ...

    def cell_volumes(self) -> Field: ...

    def delta_t(self) -> float: ...


@dataclass(frozen=True)
class CourantNumber:
    mean: float
    max: float


def courant_number(
    sum_phi: np.ndarray,
    volumes: np.ndarray,
    delta_t: float,
    *,
    rho: np.ndarray | float | None = None,
    reduce: Reducer = global_sum,
) -> CourantNumber:
    """
    Co = 0.5 * sum|phi| / V * deltaT per cell. With `rho` the flux is a mass
    flux and is divided by the cell density first.
    """
    s = np.asarray(sum_phi, dtype=float).reshape(-1)
    v = np.asarray(volumes, dtype=float).reshape(-1)
    if s.shape != v.shape:
        raise ValueError("sum_phi / volumes length mismatch")
    if rho is not None:
        s = s / (np.asarray(rho, dtype=float).reshape(-1) if isinstance(rho, np.ndarray) else float(rho))
    if s.size == 0:
        return CourantNumber(0.0, 0.0)
    co = 0.5 * s / v * float(delta_t)
    mean = 0.5 * (reduce(s) / reduce(v)) * float(delta_t)
    return CourantNumber(mean=float(mean), max=float(np.max(co)))


def report_courant(
    case: FluxData,
    time_name: str,
    density: Density | None,
    *,
    compressible: bool,
    phi_name: str = "phi",
    reduce: Reducer = global_sum,
) -> CourantNumber | None:
    if not case.header_ok(phi_name, time_name):
        print(f"    no {phi_name} field\n")
        return None
    rho = density.values if (compressible and density is not None) else None
    co = courant_number(
        case.face_flux_sums(phi_name, time_name),
        case.cell_volumes().values,
        case.delta_t(),
        rho=rho,
        reduce=reduce,
    )
    print(f"Courant Number mean: {co.mean:g} max: {co.max:g}")
    return co
