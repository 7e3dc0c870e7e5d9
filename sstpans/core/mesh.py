"""Structured mesh definitions for the turbulence closure."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np


@dataclass
class Face:
    """Face connecting two cells or a cell and boundary."""

    owner: int
    neighbour: Optional[int]
    area_vector: np.ndarray
    center: np.ndarray
    patch: Optional[str] = None

    @property
    def area(self) -> float:
        return float(np.linalg.norm(self.area_vector))

    @property
    def normal(self) -> np.ndarray:
        mag = self.area
        if mag == 0.0:
            return np.zeros_like(self.area_vector)
        return self.area_vector / mag


class Mesh:
    """Cartesian mesh with collocated storage and one empty (z) direction.

    Cells have unit ``depth`` in z unless told otherwise, so cell volumes
    are ``dx * dy * depth``.
    """

    def __init__(
        self,
        cell_centers: np.ndarray,
        cell_volumes: np.ndarray,
        faces: Sequence[Face],
        boundary_patches: Dict[str, List[int]],
        depth: float = 1.0,
    ) -> None:
        self.cell_centers = np.asarray(cell_centers, dtype=float)
        self.cell_volumes = np.asarray(cell_volumes, dtype=float)
        self.faces = list(faces)
        self.depth = float(depth)
        self.boundary_patches: Dict[str, List[int]] = {
            name: list(face_ids) for name, face_ids in boundary_patches.items()
        }
        self._owners = np.array([f.owner for f in self.faces], dtype=int)
        self._neighbours = np.array(
            [-1 if f.neighbour is None else f.neighbour for f in self.faces], dtype=int
        )

    @property
    def ncells(self) -> int:
        return int(len(self.cell_centers))

    @property
    def nfaces(self) -> int:
        return len(self.faces)

    @property
    def ndim(self) -> int:
        """Number of solved directions; z is always empty."""

        return 2

    @property
    def owners(self) -> np.ndarray:
        return self._owners

    @property
    def neighbours(self) -> np.ndarray:
        """Neighbour cell per face, ``-1`` on boundary faces."""

        return self._neighbours

    def internal_faces(self) -> np.ndarray:
        return np.flatnonzero(self._neighbours >= 0)

    @classmethod
    def structured(
        cls,
        nx: int,
        ny: int,
        lengths: Tuple[float, float] = (1.0, 1.0),
        patch_aliases: Optional[Dict[str, str]] = None,
        depth: float = 1.0,
    ) -> "Mesh":
        if nx <= 0 or ny <= 0:
            raise ValueError("Structured mesh requires nx, ny > 0")
        if depth <= 0.0:
            raise ValueError("Structured mesh requires depth > 0")
        lx, ly = lengths
        dx = lx / nx
        dy = ly / ny
        ncells = nx * ny
        centers = np.zeros((ncells, 3))
        volumes = np.full(ncells, dx * dy * depth)
        faces: List[Face] = []
        boundary_patches: Dict[str, List[int]] = {"xmin": [], "xmax": [], "ymin": [], "ymax": []}

        def cell_index(i: int, j: int) -> int:
            return j * nx + i

        for j in range(ny):
            for i in range(nx):
                centers[cell_index(i, j)] = ((i + 0.5) * dx, (j + 0.5) * dy, 0.0)

        def add_face(owner, neighbour, area_vector, center, patch) -> None:
            fid = len(faces)
            faces.append(
                Face(owner=owner, neighbour=neighbour, area_vector=area_vector, center=center, patch=patch)
            )
            if neighbour is None:
                boundary_patches[patch].append(fid)

        # x-normal faces; boundary area vectors point out of the domain
        for j in range(ny):
            yc = (j + 0.5) * dy
            for i in range(nx + 1):
                center = np.array([i * dx, yc, 0.0])
                area = dy * depth
                if i == 0:
                    add_face(cell_index(0, j), None, np.array([-area, 0.0, 0.0]), center, "xmin")
                elif i == nx:
                    add_face(cell_index(nx - 1, j), None, np.array([area, 0.0, 0.0]), center, "xmax")
                else:
                    add_face(cell_index(i - 1, j), cell_index(i, j), np.array([area, 0.0, 0.0]), center, None)

        # y-normal faces
        for j in range(ny + 1):
            for i in range(nx):
                center = np.array([(i + 0.5) * dx, j * dy, 0.0])
                area = dx * depth
                if j == 0:
                    add_face(cell_index(i, 0), None, np.array([0.0, -area, 0.0]), center, "ymin")
                elif j == ny:
                    add_face(cell_index(i, ny - 1), None, np.array([0.0, area, 0.0]), center, "ymax")
                else:
                    add_face(cell_index(i, j - 1), cell_index(i, j), np.array([0.0, area, 0.0]), center, None)

        if patch_aliases:
            for base_name, alias in patch_aliases.items():
                if base_name not in boundary_patches:
                    raise KeyError(f"Unknown base patch '{base_name}'")
                boundary_patches[alias] = boundary_patches.pop(base_name)
                for fid in boundary_patches[alias]:
                    faces[fid].patch = alias

        return cls(
            cell_centers=centers,
            cell_volumes=volumes,
            faces=faces,
            boundary_patches=boundary_patches,
            depth=depth,
        )

    def patch_faces(self, name: str) -> List[int]:
        try:
            return self.boundary_patches[name]
        except KeyError as exc:
            raise KeyError(f"Unknown patch '{name}'") from exc

    def wall_distance(self, wall_patches: Iterable[str]) -> np.ndarray:
        """Distance from each cell centre to the nearest wall face centre.

        Returns ``inf`` everywhere when no wall patch is given.
        """

        fids = [fid for name in wall_patches for fid in self.patch_faces(name)]
        if not fids:
            return np.full(self.ncells, np.inf)
        wall_centers = np.array([self.faces[fid].center for fid in fids])
        dist = np.full(self.ncells, np.inf)
        # chunk over wall faces to keep the distance matrix small
        for start in range(0, len(wall_centers), 256):
            block = wall_centers[start : start + 256]
            diff = self.cell_centers[:, None, :] - block[None, :, :]
            dist = np.minimum(dist, np.linalg.norm(diff, axis=2).min(axis=1))
        return dist

    def cell_extent(self) -> np.ndarray:
        """Largest face-to-face extent of every cell in the solved directions."""

        extent = np.zeros(self.ncells)
        for fid, face in enumerate(self.faces):
            for cid in (face.owner, face.neighbour):
                if cid is None:
                    continue
                span = 2.0 * float(np.abs(face.normal @ (face.center - self.cell_centers[cid])))
                extent[cid] = max(extent[cid], span)
        return extent
