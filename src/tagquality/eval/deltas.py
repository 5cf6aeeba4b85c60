from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from tagquality.core.geometry import corner_distance
from tagquality.eval.tag_detection import Detection


@dataclass(frozen=True)
class DeltaResult:
    deltas: list[float]
    missing: int


def compute_deltas(reference: Sequence[Detection], comparison: Sequence[Detection]) -> DeltaResult:
    """
    Corner deltas between a reference detection set and a comparison set.

    Tags are matched by id; with duplicate ids in `comparison` the first one
    wins. Reference tags absent from `comparison` only increment `missing`.
    """
    by_id: dict[int, Detection] = {}
    for det in comparison:
        by_id.setdefault(det.tag_id, det)

    deltas: list[float] = []
    missing = 0
    for ref in reference:
        match = by_id.get(ref.tag_id)
        if match is None:
            missing += 1
            continue
        for p, q in zip(ref.corners, match.corners):
            deltas.append(corner_distance(p, q))
    return DeltaResult(deltas=deltas, missing=missing)
