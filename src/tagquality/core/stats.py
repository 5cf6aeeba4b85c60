from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

import numpy as np


@dataclass(frozen=True)
class SummaryStats:
    min: float
    mean: float
    median: float
    max: float

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


ZERO_STATS = SummaryStats(min=0.0, mean=0.0, median=0.0, max=0.0)


def summarize(deltas: Iterable[float]) -> SummaryStats:
    """
    Min/mean/median/max of a pool of corner deltas.

    An empty pool yields all zeros rather than NaN. For an even number of
    samples the median is the mean of the two middle values.
    """
    d = np.asarray(list(deltas), dtype=np.float64)
    if d.size == 0:
        return ZERO_STATS
    lo = float(np.min(d))
    hi = float(np.max(d))
    # np.mean can round past the extremes of a constant pool.
    mean = min(max(float(np.mean(d)), lo), hi)
    return SummaryStats(min=lo, mean=mean, median=float(np.median(d)), max=hi)
