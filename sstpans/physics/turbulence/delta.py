"""Filter-width (LES delta) providers selected by name."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import numpy as np

from ...core.field import ScalarField
from ...core.mesh import Mesh
from ...utils.registry import Registry
from .coefficients import ConfigurationError, read_scalar, require_positive


delta_registry = Registry("delta", ConfigurationError)


def register_delta(name: str):
    return delta_registry.register(name)


def make_delta(name: str, mesh: Mesh, coeffs: Optional[Dict[str, Any]] = None) -> "FilterWidth":
    return delta_registry.create(name, mesh, coeffs or {})


class FilterWidth(ABC):
    """Per-cell length scale of the unresolved averaging region."""

    def __init__(self, mesh: Mesh, coeffs: Dict[str, Any]) -> None:
        self.mesh = mesh
        self.coeffs = dict(coeffs)
        self.delta_coeff = require_positive("deltaCoeff", read_scalar(self.coeffs, "deltaCoeff", 1.0))
        self._delta = ScalarField("delta", mesh, np.zeros(mesh.ncells))
        self.correct()

    @abstractmethod
    def _calc_delta(self) -> np.ndarray:
        """Raw geometric length per cell."""

    def correct(self) -> None:
        self._delta.values[:] = self.delta_coeff * self._calc_delta()

    def delta(self) -> ScalarField:
        return self._delta


@register_delta("cubeRootVol")
class CubeRootVolDelta(FilterWidth):
    """Cube root of the cell volume; on 2-D meshes the empty depth is divided out."""

    def _calc_delta(self) -> np.ndarray:
        vols = self.mesh.cell_volumes
        if self.mesh.ndim == 3:
            return np.cbrt(vols)
        return np.sqrt(vols / self.mesh.depth)


@register_delta("maxDeltaxyz")
class MaxDeltaxyzDelta(FilterWidth):
    """Largest cell extent in the solved directions."""

    def _calc_delta(self) -> np.ndarray:
        return self.mesh.cell_extent()
