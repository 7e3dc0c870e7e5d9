"""Scalar transport equation assembly.

Sources are carried per unit volume as ``S = su + sp * phi`` and are only
turned into matrix coefficients here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional

import numpy as np

from . import fv_ops
from .bc import BoundaryCondition, ZeroGradient
from .field import Field
from .linalg import FvMatrix
from .mesh import Mesh


@dataclass
class FvSource:
    """Explicit/implicit source contribution for one scalar equation."""

    su: np.ndarray
    sp: np.ndarray

    @classmethod
    def zero(cls, ncells: int) -> "FvSource":
        return cls(np.zeros(ncells), np.zeros(ncells))

    @classmethod
    def explicit(cls, values) -> "FvSource":
        su = np.array(values, dtype=float)
        return cls(su, np.zeros_like(su))

    @classmethod
    def implicit(cls, coeff) -> "FvSource":
        """Fully implicit ``coeff * phi`` regardless of the sign of ``coeff``."""

        sp = np.array(coeff, dtype=float)
        return cls(np.zeros_like(sp), sp)

    @classmethod
    def linearised(cls, coeff, phi) -> "FvSource":
        """``coeff * phi``: implicit where it removes ``phi``, explicit elsewhere."""

        coeff = np.asarray(coeff, dtype=float)
        phi = np.asarray(phi, dtype=float)
        sink = coeff < 0.0
        return cls(np.where(sink, 0.0, coeff * phi), np.where(sink, coeff, 0.0))

    def __add__(self, other: "FvSource") -> "FvSource":
        return FvSource(self.su + other.su, self.sp + other.sp)

    def evaluate(self, phi) -> np.ndarray:
        return self.su + self.sp * np.asarray(phi, dtype=float)

    def is_zero(self) -> bool:
        return not (np.any(self.su) or np.any(self.sp))


class ScalarEquation:
    """Builds ``ddt(phi) + div(F, phi) - laplacian(gamma, phi) = S`` as an FvMatrix.

    Euler implicit in time, upwind convection, central diffusion. Boundary
    faces without an explicit condition are zero-gradient.
    """

    def __init__(self, mesh: Mesh, name: str, bcs: Iterable[BoundaryCondition] = ()) -> None:
        self.mesh = mesh
        self.name = name
        self.bcs = list(bcs)
        covered: Dict[int, BoundaryCondition] = {}
        for bc in self.bcs:
            for fid in bc.faces:
                if int(fid) in covered:
                    raise ValueError(f"Face {fid} already has a boundary condition assigned")
                if mesh.faces[fid].neighbour is not None:
                    raise ValueError(f"Face {fid} is not a boundary face")
                covered[int(fid)] = bc
        free = [
            fid for fid, face in enumerate(mesh.faces) if face.neighbour is None and fid not in covered
        ]
        if free:
            self.bcs.append(ZeroGradient("defaultFaces", mesh, free))

        fids = mesh.internal_faces()
        self._internal = fids
        own = mesh.owners[fids]
        nbr = mesh.neighbours[fids]
        areas = np.array([mesh.faces[fid].area for fid in fids])
        distance = np.linalg.norm(mesh.cell_centers[nbr] - mesh.cell_centers[own], axis=1)
        self._delta_coeffs = areas / distance

    def assemble(
        self,
        phi: Field,
        gamma,
        source: FvSource,
        face_flux: Optional[np.ndarray] = None,
        delta_t: Optional[float] = None,
    ) -> FvMatrix:
        mesh = self.mesh
        matrix = FvMatrix(mesh)
        fids = self._internal
        own = mesh.owners[fids]
        nbr = mesh.neighbours[fids]
        if face_flux is None:
            face_flux = np.zeros(mesh.nfaces)
        face_flux = np.asarray(face_flux, dtype=float)

        if isinstance(gamma, (float, int)):
            face_gamma = np.full(mesh.nfaces, float(gamma))
        else:
            face_gamma = fv_ops.interpolate(mesh, gamma)

        diff = face_gamma[fids] * self._delta_coeffs
        flux = face_flux[fids]
        f_pos = np.maximum(flux, 0.0)
        f_neg = np.minimum(flux, 0.0)

        matrix.add_diag(own, diff + f_pos)
        matrix.add_diag(nbr, diff - f_neg)
        matrix.add_nb(own, nbr, -diff + f_neg)
        matrix.add_nb(nbr, own, -diff - f_pos)

        for bc in self.bcs:
            bc.apply_coeffs(matrix, phi, face_gamma, face_flux)

        vols = mesh.cell_volumes
        cells = np.arange(mesh.ncells)
        matrix.add_diag(cells, -source.sp * vols)
        matrix.add_rhs(cells, source.su * vols)

        if delta_t is not None:
            if delta_t <= 0.0:
                raise ValueError("deltaT must be positive")
            matrix.add_diag(cells, vols / delta_t)
            matrix.add_rhs(cells, vols / delta_t * phi.values)
        return matrix
