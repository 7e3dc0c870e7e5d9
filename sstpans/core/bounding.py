"""Lower-bounding of positive turbulence quantities."""

from __future__ import annotations

from typing import Dict, Optional

import numpy as np

from .field import Field


def bound(field: Field, lower: float) -> Optional[Dict[str, float]]:
    """Clip ``field`` from below in place.

    Cells that went negative are reset to the volume average of the
    lower-limited field, the rest are limited to ``lower``. Returns the
    pre-bounding ``min``/``max``/``average`` and the number of cells touched,
    or ``None`` when nothing had to change.
    """

    values = field.values
    below = ~(values >= lower)
    if not below.any():
        return None
    vols = field.mesh.cell_volumes
    finite = np.where(np.isfinite(values), values, lower)
    stats = {
        "min": float(finite.min()),
        "max": float(finite.max()),
        "average": float(np.sum(finite * vols) / np.sum(vols)),
        "cells": float(np.count_nonzero(below)),
    }
    limited = np.maximum(finite, lower)
    average = float(np.sum(limited * vols) / np.sum(vols))
    negative = ~(values > 0.0)
    values[:] = np.maximum(np.where(negative, average, limited), lower)
    return stats
