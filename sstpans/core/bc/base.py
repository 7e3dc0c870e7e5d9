"""Boundary condition base classes for cell-centred scalars."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

import numpy as np

from ..mesh import Mesh


class BoundaryCondition(ABC):
    def __init__(self, name: str, mesh: Mesh, faces: Iterable[int]) -> None:
        self.name = name
        self.mesh = mesh
        self.faces = np.asarray(list(faces), dtype=int)

    @abstractmethod
    def apply_coeffs(self, matrix, field, face_gamma: np.ndarray, face_flux: np.ndarray) -> None:
        """Add diffusive/convective boundary contributions to the matrix."""

    def owners(self) -> np.ndarray:
        return self.mesh.owners[self.faces]
