"""PANS resolution control: the unresolved-to-total ratios fK and fOmega."""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .coefficients import PANSCoefficients


class ResolutionControl:
    """Maps the filter width onto bounded fK/fOmega fields.

    ``fK = clip(C * (delta / Lambda)^n, loLim, uLim)`` with the integral
    length ``Lambda = k^1.5 / epsilon = sqrt(k) / (betaStar * omega)``, and
    ``fOmega = fK / fEpsilon``.
    """

    def __init__(self, coeffs: PANSCoefficients, beta_star: float) -> None:
        self.coeffs = coeffs
        self.beta_star = beta_star

    @property
    def lo_lim(self) -> float:
        return self.coeffs.lo_lim

    @property
    def u_lim(self) -> float:
        return self.coeffs.u_lim

    def integral_length(self, k, omega) -> np.ndarray:
        k = np.maximum(np.asarray(k, dtype=float), 0.0)
        omega = np.asarray(omega, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            return np.sqrt(k) / (self.beta_star * omega)

    def fK(self, k, omega, delta) -> np.ndarray:
        c = self.coeffs
        delta = np.asarray(delta, dtype=float)
        length = np.broadcast_to(self.integral_length(k, omega), delta.shape)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            raw = c.fk_coefficient(self.beta_star) * (delta / length) ** c.fk_exponent
        degenerate = ~(delta > 0.0) | ~np.isfinite(delta) | np.isnan(raw)
        raw = np.where(degenerate, c.lo_lim, raw)
        return np.clip(raw, c.lo_lim, c.u_lim)

    def fOmega(self, fK) -> np.ndarray:
        return np.asarray(fK, dtype=float) / self.coeffs.f_epsilon

    def evaluate(self, k, omega, delta) -> Tuple[np.ndarray, np.ndarray]:
        fK = self.fK(k, omega, delta)
        return fK, self.fOmega(fK)
