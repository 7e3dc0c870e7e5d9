"""Core finite-volume data structures."""

from .bounding import bound
from .equation import FvSource, ScalarEquation
from .field import ScalarField, VectorField
from .linalg import FvMatrix
from .mesh import Mesh

__all__ = [
    "FvMatrix",
    "FvSource",
    "Mesh",
    "ScalarEquation",
    "ScalarField",
    "VectorField",
    "bound",
]
