"""Transport properties models."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ConstantTransport:
    rho: float = 1.0
    mu: float = 1.0e-3

    def __post_init__(self) -> None:
        if self.rho <= 0.0:
            raise ValueError("rho must be positive")
        if self.mu < 0.0:
            raise ValueError("mu must be non-negative")

    def density(self) -> float:
        return self.rho

    def viscosity(self) -> float:
        return self.mu
