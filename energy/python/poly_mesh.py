from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from foam_ascii import (
    n_cells_from_owner,
    read_boundary_patches,
    read_face_list,
    read_label_list,
    read_point_list,
)

_VSMALL = 1e-300


@dataclass(frozen=True)
class Patch:
    name: str
    type: str
    start_face: int
    n_faces: int


@dataclass
class PolyMesh:
    points: np.ndarray  # (nPoints, 3)
    faces: list[np.ndarray]
    owner: np.ndarray  # (nFaces,)
    neighbour: np.ndarray  # (nInternalFaces,)
    n_cells: int
    patches: list[Patch] = field(default_factory=list)
    _volumes: np.ndarray | None = field(default=None, init=False, repr=False)

    @property
    def n_internal_faces(self) -> int:
        return int(self.neighbour.size)

    def face_centres_and_areas(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Face centres and area vectors. Triangles are exact; polygons are split
        into triangles about the point average and area-weighted.
        """
        n_faces = len(self.faces)
        centres = np.zeros((n_faces, 3), dtype=float)
        areas = np.zeros((n_faces, 3), dtype=float)

        sizes = np.fromiter((f.size for f in self.faces), dtype=np.int64, count=n_faces)
        for size in np.unique(sizes):
            idx = np.nonzero(sizes == size)[0]
            verts = self.points[np.vstack([self.faces[i] for i in idx])]  # (m, size, 3)
            if size == 3:
                centres[idx] = verts.mean(axis=1)
                areas[idx] = 0.5 * np.cross(verts[:, 1] - verts[:, 0], verts[:, 2] - verts[:, 0])
                continue

            est = verts.mean(axis=1)  # (m, 3)
            nxt = np.roll(verts, -1, axis=1)
            c = verts + nxt + est[:, None, :]
            n = np.cross(nxt - verts, est[:, None, :] - verts)
            a = np.linalg.norm(n, axis=2)  # (m, size)
            sum_a = a.sum(axis=1)
            sum_ac = (a[:, :, None] * c).sum(axis=1)
            ok = sum_a > _VSMALL
            ctr = est.copy()
            ctr[ok] = sum_ac[ok] / (3.0 * sum_a[ok, None])
            centres[idx] = ctr
            areas[idx] = 0.5 * n.sum(axis=1)
        return centres, areas

    def cell_volumes(self) -> np.ndarray:
        """
        Cell volumes from the pyramid decomposition about the estimated cell
        centre (average of face centres).
        """
        if self._volumes is not None:
            return self._volumes
        fc, sf = self.face_centres_and_areas()
        n_int = self.n_internal_faces
        own = self.owner
        nei = self.neighbour

        count = np.bincount(own, minlength=self.n_cells).astype(float)
        count += np.bincount(nei, minlength=self.n_cells)
        c_est = np.zeros((self.n_cells, 3), dtype=float)
        np.add.at(c_est, own, fc)
        np.add.at(c_est, nei, fc[:n_int])
        if np.any(count == 0):
            raise ValueError("Mesh has cells without faces")
        c_est /= count[:, None]

        vol = np.zeros((self.n_cells,), dtype=float)
        pyr_own = np.einsum("ij,ij->i", sf, fc - c_est[own])
        np.add.at(vol, own, pyr_own)
        pyr_nei = np.einsum("ij,ij->i", sf[:n_int], c_est[nei] - fc[:n_int])
        np.add.at(vol, nei, pyr_nei)
        vol /= 3.0
        self._volumes = vol
        return vol

    def patch_sizes(self) -> dict[str, int]:
        return {p.name: p.n_faces for p in self.patches}


def read_poly_mesh(mesh_dir: Path) -> PolyMesh:
    """
    Read an ASCII polyMesh directory (points, faces, owner, neighbour, boundary).
    """
    if not mesh_dir.is_dir():
        raise FileNotFoundError(f"Missing polyMesh directory: {mesh_dir}")
    points = read_point_list(mesh_dir / "points")
    faces = read_face_list(mesh_dir / "faces")
    owner = read_label_list(mesh_dir / "owner")
    neighbour = read_label_list(mesh_dir / "neighbour")
    if owner.size != len(faces):
        raise ValueError(f"{mesh_dir}: owner has {owner.size} entries for {len(faces)} faces")
    if neighbour.size > owner.size:
        raise ValueError(f"{mesh_dir}: more neighbours ({neighbour.size}) than faces ({owner.size})")
    if faces and max(int(f.max()) for f in faces if f.size) >= points.shape[0]:
        raise ValueError(f"{mesh_dir}: face references a point index out of range")

    patches = [Patch(name, kind, start, size) for name, kind, start, size in read_boundary_patches(mesh_dir / "boundary")]
    n_cells = n_cells_from_owner(mesh_dir / "owner", owner, neighbour)
    return PolyMesh(points=points, faces=faces, owner=owner, neighbour=neighbour, n_cells=n_cells, patches=patches)
