"""Physics models."""

from .transport import ConstantTransport
from .turbulence import (
    ConfigurationError,
    KOmegaSST,
    KOmegaSSTPANS,
    PANSConfig,
    make_turbulence_model,
    register_turbulence,
    turbulence_registry,
)

__all__ = [
    "ConfigurationError",
    "ConstantTransport",
    "KOmegaSST",
    "KOmegaSSTPANS",
    "PANSConfig",
    "make_turbulence_model",
    "register_turbulence",
    "turbulence_registry",
]
