"""Base turbulence model implementation and registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional

import numpy as np

from ...core.bc import BoundaryCondition, FixedValue, ZeroGradient
from ...core.field import ScalarField
from ...core.mesh import Mesh
from ...utils.io import read_turbulence_properties
from ...utils.registry import Registry
from .coefficients import ConfigurationError


turbulence_registry = Registry("turbulence model", ConfigurationError)


def register_turbulence(name: str):
    return turbulence_registry.register(name)


def make_turbulence_model(name: str, *args, **kwargs):
    return turbulence_registry.create(name, *args, **kwargs)


SCALAR_BCS = {
    "fixedvalue": FixedValue,
    "zerogradient": ZeroGradient,
}


def build_scalar_bcs(mesh: Mesh, boundary: Optional[Mapping]) -> List[BoundaryCondition]:
    """Boundary conditions from ``{patch: {type: fixedValue, value: 0.0}}``."""

    bcs: List[BoundaryCondition] = []
    for patch, cfg in (boundary or {}).items():
        info = cfg or {}
        if isinstance(info, str):
            info = {"type": info}
        bc_type = str(info.get("type", "zeroGradient"))
        cls = SCALAR_BCS.get(bc_type.lower())
        if cls is None:
            raise ConfigurationError(f"Unknown boundary condition '{bc_type}' on patch '{patch}'")
        try:
            faces = mesh.patch_faces(patch)
        except KeyError as exc:
            raise ConfigurationError(str(exc.args[0])) from exc
        if cls is FixedValue:
            if "value" not in info:
                raise ConfigurationError(f"fixedValue on patch '{patch}' needs a value")
            bcs.append(cls(patch, mesh, faces, info["value"]))
        else:
            bcs.append(cls(patch, mesh, faces))
    return bcs


class TurbulenceModel(ABC):
    def __init__(
        self,
        mesh: Mesh,
        fields: Dict[str, ScalarField],
        transport,
        config: Optional[Mapping] = None,
    ) -> None:
        self.mesh = mesh
        self.fields = fields
        self.transport = transport
        self.config = config if config is not None else {}
        self._nut = ScalarField("nut", mesh, np.zeros(mesh.ncells))

    @abstractmethod
    def correct(self, velocity_field) -> None:
        """Update model internal state for the current time step."""

    def read(self, config: Optional[Mapping] = None) -> bool:
        """Re-read model coefficients; return whether anything changed."""

        return False

    def nu(self) -> float:
        return self.transport.viscosity() / self.transport.density()

    def nut(self) -> ScalarField:
        return self._nut

    def _field(self, name: str, value) -> ScalarField:
        """Return ``fields[name]`` or register a new field initialised to ``value``."""

        if name in self.fields:
            return self.fields[name]
        field = ScalarField(name, self.mesh, np.broadcast_to(np.asarray(value, dtype=float), (self.mesh.ncells,)))
        self.fields[name] = field
        return field

    def _wall_distance(self, wall_distance, wall_patches) -> np.ndarray:
        if wall_distance is not None:
            y = np.broadcast_to(np.asarray(wall_distance, dtype=float), (self.mesh.ncells,)).copy()
        elif "y" in self.fields:
            y = self.fields["y"].values.copy()
        else:
            try:
                y = self.mesh.wall_distance(wall_patches)
            except KeyError as exc:
                raise ConfigurationError(str(exc.args[0])) from exc
        if np.any(y < 0.0) or np.any(np.isnan(y)):
            raise ValueError("Wall distance must be non-negative")
        return y


def load_turbulence_model(path, mesh: Mesh, fields: Dict[str, ScalarField], transport, **kwargs) -> TurbulenceModel:
    """Build the model selected in a ``turbulence.yaml`` properties file."""

    name, coeffs = read_turbulence_properties(path)
    return make_turbulence_model(name, mesh=mesh, fields=fields, transport=transport, config=coeffs, **kwargs)
