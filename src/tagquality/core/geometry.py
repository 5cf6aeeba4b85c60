from __future__ import annotations

from typing import Sequence

import numpy as np

Point2 = Sequence[float]


def corner_distance(p: Point2, q: Point2) -> float:
    """Euclidean pixel distance between two (x, y) points."""
    return float(np.hypot(float(p[0]) - float(q[0]), float(p[1]) - float(q[1])))
