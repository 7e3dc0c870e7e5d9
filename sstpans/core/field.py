"""Cell-centred field containers."""

from __future__ import annotations

from typing import Iterable

import numpy as np

from .mesh import Mesh


class Field:
    """Base class for collocated fields."""

    def __init__(self, name: str, mesh: Mesh, values: Iterable[float]) -> None:
        self.name = name
        self.mesh = mesh
        arr = np.array(values, dtype=float)
        if arr.ndim == 0:
            arr = np.full(mesh.ncells, float(arr))
        if arr.shape[0] != mesh.ncells:
            raise ValueError(f"Field {name} expects {mesh.ncells} cells, got {arr.shape[0]}")
        self.values = arr

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r}, ncells={self.mesh.ncells})"


class ScalarField(Field):
    """Scalar field stored at cell centres."""


class VectorField(Field):
    """Vector field with three components per cell."""

    def __init__(self, name: str, mesh: Mesh, values: Iterable[Iterable[float]]):
        arr = np.array(values, dtype=float)
        if arr.shape != (mesh.ncells, 3):
            raise ValueError(
                f"VectorField {name} expects shape {(mesh.ncells, 3)}, got {arr.shape}"
            )
        self.name = name
        self.mesh = mesh
        self.values = arr

