"""Zero-gradient (Neumann) boundary condition."""

from __future__ import annotations

import numpy as np

from .base import BoundaryCondition


class ZeroGradient(BoundaryCondition):
    def apply_coeffs(self, matrix, field, face_gamma, face_flux) -> None:
        # no diffusive flux; outflow is implicit, inflow carries the old owner value
        values = getattr(field, "values", field)
        owners = self.owners()
        flux = np.asarray(face_flux)[self.faces]
        matrix.add_diag(owners, np.maximum(flux, 0.0))
        matrix.add_rhs(owners, -np.minimum(flux, 0.0) * values[owners])
