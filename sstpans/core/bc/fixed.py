"""Fixed-value (Dirichlet) boundary condition."""

from __future__ import annotations

import numpy as np

from .base import BoundaryCondition


class FixedValue(BoundaryCondition):
    def __init__(self, name, mesh, faces, value):
        super().__init__(name, mesh, faces)
        self.value = np.broadcast_to(np.asarray(value, dtype=float), self.faces.shape).copy()

    def apply_coeffs(self, matrix, field, face_gamma, face_flux) -> None:
        mesh = self.mesh
        owners = self.owners()
        centers = np.array([mesh.faces[fid].center for fid in self.faces])
        areas = np.array([mesh.faces[fid].area for fid in self.faces])
        distance = np.linalg.norm(centers - mesh.cell_centers[owners], axis=1)
        coeff = np.asarray(face_gamma)[self.faces] * areas / np.maximum(distance, 1e-300)
        flux = np.asarray(face_flux)[self.faces]
        matrix.add_diag(owners, coeff + np.maximum(flux, 0.0))
        matrix.add_rhs(owners, (coeff - np.minimum(flux, 0.0)) * self.value)
