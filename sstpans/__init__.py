"""k-omega SST based PANS turbulence closure on collocated finite volumes."""

from .core import Mesh, ScalarField, VectorField
from .physics import (
    ConfigurationError,
    ConstantTransport,
    KOmegaSST,
    KOmegaSSTPANS,
    PANSConfig,
    make_turbulence_model,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ConstantTransport",
    "KOmegaSST",
    "KOmegaSSTPANS",
    "Mesh",
    "PANSConfig",
    "ScalarField",
    "VectorField",
    "make_turbulence_model",
]
