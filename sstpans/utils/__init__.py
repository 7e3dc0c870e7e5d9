"""Shared utilities."""

from .io import read_turbulence_properties, read_yaml_file
from .logging import IterationLogger
from .registry import Registry

__all__ = ["IterationLogger", "Registry", "read_turbulence_properties", "read_yaml_file"]
