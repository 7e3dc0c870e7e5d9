"""Source terms of the (unresolved) k and omega transport equations.

Everything here is per unit volume in kinematic form and returned as
``FvSource`` contributions; nothing is written back to the model fields.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ...core.equation import FvSource
from .coefficients import QsasCoefficients, SSTCoefficients, UniformSource

SMALL = 1.0e-15


class SourceTermAssembler:
    def __init__(
        self,
        coeffs: SSTCoefficients,
        qsas: Optional[QsasCoefficients] = None,
        k_source: Optional[UniformSource] = None,
        omega_source: Optional[UniformSource] = None,
    ) -> None:
        self.coeffs = coeffs
        self.qsas_coeffs = qsas or QsasCoefficients()
        self.k_source_coeffs = k_source or UniformSource()
        self.omega_source_coeffs = omega_source or UniformSource()

    def k_equation(self, k, omega, G, div_u) -> FvSource:
        """Limited production, ``betaStar * omega`` destruction and dilatation."""

        c = self.coeffs
        k = np.asarray(k, dtype=float)
        omega = np.asarray(omega, dtype=float)
        production = np.minimum(G, c.c1 * c.beta_star * k * omega)
        source = FvSource.explicit(production) + FvSource.implicit(-c.beta_star * omega)
        return source + FvSource.linearised(-(2.0 / 3.0) * np.asarray(div_u, dtype=float), k)

    def omega_destruction_coeff(self, gamma, beta, f_omega=1.0) -> np.ndarray:
        """PANS destruction ``gamma*betaStar - gamma*betaStar/fOmega + beta/fOmega``.

        Reduces to ``beta`` when ``fOmega = 1``.
        """

        bs = self.coeffs.beta_star
        return gamma * bs - gamma * bs / f_omega + beta / f_omega

    def omega_equation(
        self,
        omega,
        GbyNu,
        S2,
        F1,
        F2,
        cd_k_omega,
        gamma,
        beta,
        div_u,
        f_omega=1.0,
    ) -> FvSource:
        c = self.coeffs
        omega = np.asarray(omega, dtype=float)
        limiter = (c.c1 / c.a1) * c.beta_star * omega * np.maximum(
            c.a1 * omega, c.b1 * F2 * np.sqrt(np.maximum(S2, 0.0))
        )
        production = gamma * np.minimum(GbyNu, limiter)
        beta_l = self.omega_destruction_coeff(gamma, beta, f_omega)
        omega_safe = np.maximum(omega, SMALL)

        source = FvSource.explicit(production)
        source = source + FvSource.linearised(-beta_l * omega, omega)
        source = source + FvSource.linearised(-(2.0 / 3.0) * gamma * np.asarray(div_u, dtype=float), omega)
        # cross diffusion, weighted by (1 - F1)
        source = source + FvSource.linearised(-(F1 - 1.0) * cd_k_omega / omega_safe, omega)
        return source

    def k_source(self, ncells: int, f_k=1.0) -> FvSource:
        """Configured extra source for k; acts on the unresolved part through fK."""

        s = self.k_source_coeffs
        if not s.active:
            return FvSource.zero(ncells)
        f_k = np.broadcast_to(np.asarray(f_k, dtype=float), (ncells,))
        return FvSource(np.full(ncells, s.explicit) * f_k, np.full(ncells, s.implicit))

    def omega_source(self, ncells: int, f_omega=1.0) -> FvSource:
        s = self.omega_source_coeffs
        if not s.active:
            return FvSource.zero(ncells)
        f_omega = np.broadcast_to(np.asarray(f_omega, dtype=float), (ncells,))
        return FvSource(np.full(ncells, s.explicit) * f_omega, np.full(ncells, s.implicit))

    def qsas(
        self,
        S2,
        gamma,
        beta,
        k,
        omega,
        grad_k,
        grad_omega,
        mag_lap_u,
        delta,
        delta_t: Optional[float] = None,
    ) -> FvSource:
        """Scale-adaptive (SAS) omega source of Egorov and Menter.

        Zero unless enabled. The von Karman length is bounded below by the
        filter width so the source cannot grow without limit on fine meshes.
        """

        q = self.qsas_coeffs
        omega = np.asarray(omega, dtype=float)
        if not q.enabled:
            return FvSource.zero(omega.shape[0])

        bs = self.coeffs.beta_star
        k = np.maximum(np.asarray(k, dtype=float), SMALL)
        omega = np.maximum(omega, SMALL)
        S2 = np.maximum(np.asarray(S2, dtype=float), 0.0)

        L = np.sqrt(k) / (bs**0.25 * omega)
        c_sas = np.sqrt(q.kappa * q.zeta2 / np.maximum(beta / bs - gamma, SMALL))
        Lvk = np.maximum(
            q.kappa * np.sqrt(S2) / (np.asarray(mag_lap_u, dtype=float) + SMALL),
            q.Cs * c_sas * np.asarray(delta, dtype=float),
        )
        Lvk = np.maximum(Lvk, SMALL)

        grad_ratio = np.maximum(
            np.sum(np.asarray(grad_omega) ** 2, axis=1) / omega**2,
            np.sum(np.asarray(grad_k) ** 2, axis=1) / k**2,
        )
        value = np.maximum(
            q.zeta2 * q.kappa * S2 * (L / Lvk) ** 2 - (2.0 * q.C / q.sigma_phi) * k * grad_ratio,
            0.0,
        )
        if delta_t is not None:
            value = np.minimum(value, omega / (0.1 * delta_t))
        return FvSource.explicit(value)
