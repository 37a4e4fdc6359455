"""Planar node positions and the distance metric used by the distance variant."""

from __future__ import annotations

import math
from typing import Tuple

Position = Tuple[float, float]


def distance(a: Position, b: Position) -> float:
    """Euclidean distance between two (x, y) positions."""
    return math.hypot(a[0] - b[0], a[1] - b[1])
