"""Boundary condition implementations."""

from .base import BoundaryCondition
from .fixed import FixedValue
from .zero import ZeroGradient

__all__ = [
    "BoundaryCondition",
    "FixedValue",
    "ZeroGradient",
]
