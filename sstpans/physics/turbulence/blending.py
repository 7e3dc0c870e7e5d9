"""SST blending functions F1, F2 and F3."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .coefficients import SSTCoefficients

CD_K_OMEGA_MIN = 1.0e-10
SMALL = 1.0e-15


@dataclass
class BlendingFields:
    F1: np.ndarray
    F2: np.ndarray
    F3: np.ndarray

    @property
    def F23(self) -> np.ndarray:
        """Blend used by the eddy-viscosity limiter; F2 when F3 is off."""

        return self.F2 * self.F3


class BlendingEvaluator:
    """Evaluates the SST blending fields from turbulence and wall-distance data.

    ``diffusion_ratio`` is the PANS factor fK/fOmega applied to the outer
    omega diffusion coefficient; it is 1 for the plain RAS model.
    """

    def __init__(self, coeffs: SSTCoefficients) -> None:
        self.coeffs = coeffs

    def cd_k_omega(self, grad_k, grad_omega, omega, diffusion_ratio=1.0) -> np.ndarray:
        omega = np.maximum(np.asarray(omega, dtype=float), SMALL)
        dot = np.einsum("ij,ij->i", np.asarray(grad_k, dtype=float), np.asarray(grad_omega, dtype=float))
        return 2.0 * self.coeffs.alpha_omega2 * diffusion_ratio * dot / omega

    def F1(self, k, omega, nu, y, cd_k_omega, diffusion_ratio=1.0) -> np.ndarray:
        c = self.coeffs
        k, omega, y = _prepare(k, omega, y)
        cd_plus = np.maximum(cd_k_omega, CD_K_OMEGA_MIN)
        with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
            arg1 = np.minimum(
                np.minimum(
                    np.maximum(
                        np.sqrt(k) / (c.beta_star * omega * y),
                        500.0 * nu / (y**2 * omega),
                    ),
                    4.0 * c.alpha_omega2 * diffusion_ratio * k / (cd_plus * y**2),
                ),
                10.0,
            )
        return _saturate(np.tanh(arg1**4))

    def F2(self, k, omega, nu, y) -> np.ndarray:
        c = self.coeffs
        k, omega, y = _prepare(k, omega, y)
        with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
            arg2 = np.minimum(
                np.maximum(
                    2.0 * np.sqrt(k) / (c.beta_star * omega * y),
                    500.0 * nu / (y**2 * omega),
                ),
                100.0,
            )
        return _saturate(np.tanh(arg2**2))

    def F3(self, omega, nu, y) -> np.ndarray:
        _, omega, y = _prepare(0.0, omega, y)
        if not self.coeffs.F3:
            return np.ones_like(omega)
        with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
            arg3 = np.minimum(150.0 * nu / (omega * y**2), 10.0)
        return _saturate(1.0 - np.tanh(arg3**4))

    def evaluate(self, k, omega, nu, y, cd_k_omega, diffusion_ratio=1.0) -> BlendingFields:
        return BlendingFields(
            F1=self.F1(k, omega, nu, y, cd_k_omega, diffusion_ratio),
            F2=self.F2(k, omega, nu, y),
            F3=self.F3(omega, nu, y),
        )


def _prepare(k, omega, y):
    omega = np.asarray(omega, dtype=float)
    k = np.broadcast_to(np.maximum(np.asarray(k, dtype=float), 0.0), omega.shape)
    y = np.broadcast_to(np.maximum(np.asarray(y, dtype=float), SMALL), omega.shape)
    return k, np.maximum(omega, SMALL), y


def _saturate(values: np.ndarray) -> np.ndarray:
    # non-finite arguments only arise from infinite wall distance
    return np.clip(np.nan_to_num(values, nan=0.0), 0.0, 1.0)
