"""Coefficient dictionary helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Tuple

import yaml


def read_yaml_file(path: str | Path) -> Dict[str, Any]:
    file_path = Path(path)
    with file_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{file_path} does not hold a mapping")
    return data


def read_turbulence_properties(path: str | Path) -> Tuple[str, Dict[str, Any]]:
    """Return the selected model name and its coefficient block.

    The file names the model under ``TurbulenceModel`` and holds the
    coefficients either under ``<name>Coeffs`` or ``<name>``.
    """

    data = read_yaml_file(path)
    name = data.get("TurbulenceModel")
    if not name:
        raise ValueError(f"{path} does not select a TurbulenceModel")
    coeffs = data.get(f"{name}Coeffs", data.get(name, {})) or {}
    return str(name), dict(coeffs)
