"""SST eddy-viscosity limiter."""

from __future__ import annotations

import numpy as np

SMALL = 1.0e-15


class EddyViscosityCorrector:
    """``nut = a1*k / max(a1*omega, b1*F2*sqrt(S2))`` clipped to ``[nut_min, nut_max]``."""

    def __init__(self, a1: float, b1: float, nut_min: float = 0.0, nut_max: float = 1.0e5) -> None:
        self.a1 = a1
        self.b1 = b1
        self.nut_min = nut_min
        self.nut_max = nut_max

    def __call__(self, k, omega, F2, S2) -> np.ndarray:
        k = np.maximum(np.asarray(k, dtype=float), 0.0)
        omega = np.maximum(np.asarray(omega, dtype=float), 0.0)
        magS = np.sqrt(np.maximum(np.asarray(S2, dtype=float), 0.0))
        denom = np.maximum(np.maximum(self.a1 * omega, self.b1 * np.asarray(F2) * magS), SMALL)
        with np.errstate(over="ignore", invalid="ignore"):
            nut = self.a1 * k / denom
        nut = np.nan_to_num(nut, nan=self.nut_min, posinf=self.nut_max)
        return np.clip(nut, self.nut_min, self.nut_max)
