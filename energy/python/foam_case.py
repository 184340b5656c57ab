from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from dimensions import DIM_VOLUME, DimensionedScalar, DimensionSet
from foam_ascii import (
    lookup_dimensioned_scalar,
    lookup_scalar,
    read_boundary_values,
    read_foam_text,
    read_header,
    read_internal_field,
)
from poly_mesh import PolyMesh, read_poly_mesh


@dataclass(frozen=True)
class Field:
    name: str
    dimensions: DimensionSet
    values: np.ndarray  # (nCells,) or (nCells, 3)


def _is_float_dirname(name: str) -> bool:
    try:
        float(name)
        return True
    except Exception:
        return False


def list_time_dirs(case_dir: Path) -> list[tuple[float, str]]:
    """
    Numeric time directories of a case as (value, name), ascending.
    """
    if not case_dir.is_dir():
        raise FileNotFoundError(f"Case directory not found: {case_dir}")
    out: list[tuple[float, str]] = []
    for p in case_dir.iterdir():
        if p.is_dir() and _is_float_dirname(p.name):
            out.append((float(p.name), p.name))
    out.sort(key=lambda x: x[0])
    return out


class FoamCase:
    """
    One (serial) case directory, optionally scoped to a mesh region.

    Field and dictionary reads resolve against `<root>/<time>[/<region>]` and
    `<root>/constant[/<region>]`. The mesh is read once on first use.
    """

    def __init__(self, root: Path, region: str | None = None) -> None:
        self.root = Path(root)
        self.region = region or None
        self._mesh: PolyMesh | None = None

    def _scoped(self, base: Path) -> Path:
        return base / self.region if self.region else base

    def time_path(self, time_name: str) -> Path:
        return self._scoped(self.root / time_name)

    @property
    def constant_path(self) -> Path:
        return self._scoped(self.root / "constant")

    @property
    def system_path(self) -> Path:
        return self.root / "system"

    @property
    def mesh(self) -> PolyMesh:
        if self._mesh is None:
            self._mesh = read_poly_mesh(self.constant_path / "polyMesh")
        return self._mesh

    def time_dirs(self) -> list[tuple[float, str]]:
        return list_time_dirs(self.root)

    def has_constant(self) -> bool:
        return (self.root / "constant").is_dir()

    def header_ok(self, name: str, time_name: str) -> bool:
        return read_header(self.time_path(time_name) / name) is not None

    def read_field(self, name: str, time_name: str) -> Field:
        dims, values = read_internal_field(self.time_path(time_name) / name, self.mesh.n_cells)
        return Field(name=name, dimensions=dims, values=values)

    def cell_volumes(self) -> Field:
        return Field(name="V", dimensions=DIM_VOLUME, values=self.mesh.cell_volumes())

    def lookup_dimensioned(self, dict_name: str, key: str) -> DimensionedScalar:
        path = self.constant_path / dict_name
        return lookup_dimensioned_scalar(read_foam_text(path), key, where=str(path))

    def delta_t(self) -> float:
        path = self.system_path / "controlDict"
        return lookup_scalar(read_foam_text(path), "deltaT", where=str(path))

    def face_flux_sums(self, name: str, time_name: str) -> np.ndarray:
        """
        Per-cell sum of |flux| over the cell's faces. Internal faces count for
        both owner and neighbour; patch faces without a value contribute zero.
        """
        mesh = self.mesh
        path = self.time_path(time_name) / name
        n_int = mesh.n_internal_faces
        _, phi_int = read_internal_field(path, n_int)
        boundary = read_boundary_values(path, mesh.patch_sizes())

        sums = np.zeros((mesh.n_cells,), dtype=float)
        np.add.at(sums, mesh.owner[:n_int], np.abs(phi_int))
        np.add.at(sums, mesh.neighbour, np.abs(phi_int))
        for patch in mesh.patches:
            vals = boundary.get(patch.name)
            if vals is None or patch.n_faces == 0:
                continue
            face_cells = mesh.owner[patch.start_face : patch.start_face + patch.n_faces]
            np.add.at(sums, face_cells, np.abs(vals))
        return sums


def _processor_index(p: Path) -> int:
    m = re.fullmatch(r"processor(\d+)", p.name)
    return int(m.group(1)) if m else -1


class DecomposedCase:
    """
    A case split into `processor<N>` sub-cases. Per-cell data is returned in
    processor order; dictionaries and controlDict come from the undecomposed root.
    """

    def __init__(self, root: Path, region: str | None = None) -> None:
        self.root_case = FoamCase(root, region)
        root = Path(root)
        if not root.is_dir():
            raise FileNotFoundError(f"Case directory not found: {root}")
        proc_dirs = sorted(
            (p for p in root.iterdir() if p.is_dir() and _processor_index(p) >= 0),
            key=_processor_index,
        )
        if not proc_dirs:
            raise FileNotFoundError(f"No processor directories found in {root}")
        self.parts = [FoamCase(p, region) for p in proc_dirs]

    def time_dirs(self) -> list[tuple[float, str]]:
        return self.parts[0].time_dirs()

    def has_constant(self) -> bool:
        return self.parts[0].has_constant()

    def header_ok(self, name: str, time_name: str) -> bool:
        return all(part.header_ok(name, time_name) for part in self.parts)

    def read_field(self, name: str, time_name: str) -> Field:
        fields = [part.read_field(name, time_name) for part in self.parts]
        dims = fields[0].dimensions
        for f in fields[1:]:
            if f.dimensions != dims:
                raise ValueError(f"Inconsistent dimensions for {name} across processors at time {time_name}")
        return Field(name=name, dimensions=dims, values=np.concatenate([f.values for f in fields], axis=0))

    def cell_volumes(self) -> Field:
        return Field(
            name="V",
            dimensions=DIM_VOLUME,
            values=np.concatenate([part.mesh.cell_volumes() for part in self.parts]),
        )

    def lookup_dimensioned(self, dict_name: str, key: str) -> DimensionedScalar:
        return self.root_case.lookup_dimensioned(dict_name, key)

    def delta_t(self) -> float:
        return self.root_case.delta_t()

    def face_flux_sums(self, name: str, time_name: str) -> np.ndarray:
        return np.concatenate([part.face_flux_sums(name, time_name) for part in self.parts])
