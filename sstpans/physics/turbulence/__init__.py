"""Turbulence model package."""

from .base import load_turbulence_model, make_turbulence_model, register_turbulence, turbulence_registry
from .coefficients import ConfigurationError, PANSConfig
from .delta import delta_registry, make_delta
from .pans import CorrectionStage, KOmegaSSTPANS  # noqa: F401
from .sst import KOmegaSST  # noqa: F401

__all__ = [
    "ConfigurationError",
    "CorrectionStage",
    "KOmegaSST",
    "KOmegaSSTPANS",
    "PANSConfig",
    "delta_registry",
    "load_turbulence_model",
    "make_delta",
    "make_turbulence_model",
    "register_turbulence",
    "turbulence_registry",
]
