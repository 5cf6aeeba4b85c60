from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable

import numpy as np

from tagquality.config import DetectorConfig
from tagquality.core.image_io import load_gray_u8
from tagquality.errors import DetectionError

logger = logging.getLogger(__name__)

Corner = tuple[float, float]


@dataclass(frozen=True)
class Detection:
    """
    One decoded tag.

    `corners` keeps the detector's winding so two detections of the same tag
    can be compared corner by corner.
    """

    tag_id: int
    corners: tuple[Corner, Corner, Corner, Corner]


def _make_apriltag_detector(config: DetectorConfig):
    try:
        from pupil_apriltags import Detector  # type: ignore
    except ImportError as e:
        raise RuntimeError("Tag detection requires pupil-apriltags.") from e

    return Detector(
        families=config.family,
        nthreads=config.nthreads,
        quad_decimate=config.quad_decimate,
        quad_sigma=config.quad_sigma,
        refine_edges=int(config.refine_edges),
        decode_sharpening=config.decode_sharpening,
        debug=0,
    )


def normalize_detections(raw: Iterable[Any]) -> list[Detection]:
    """Convert backend results (objects with `tag_id` and a (4,2) `corners`) to `Detection`s."""
    out: list[Detection] = []
    for d in raw:
        corners = np.asarray(d.corners, dtype=np.float64).reshape(-1, 2)
        if corners.shape != (4, 2):
            logger.warning("Dropping tag %s with %d corners", d.tag_id, corners.shape[0])
            continue
        out.append(
            Detection(
                tag_id=int(d.tag_id),
                corners=tuple((float(x), float(y)) for x, y in corners),  # type: ignore[arg-type]
            )
        )
    return out


def duplicate_ids(detections: Iterable[Detection]) -> list[int]:
    counts = Counter(d.tag_id for d in detections)
    return sorted(tag_id for tag_id, n in counts.items() if n > 1)


class TagDetector:
    """Grayscale loading + AprilTag detection with a single long-lived detector."""

    def __init__(self, config: DetectorConfig | None = None, backend: Any | None = None) -> None:
        self.config = config or DetectorConfig()
        self._backend = backend if backend is not None else _make_apriltag_detector(self.config)

    def detect(self, image_path: Path) -> list[Detection]:
        gray = load_gray_u8(image_path)
        try:
            raw = self._backend.detect(gray)
        except Exception as e:
            raise DetectionError(f"Tag detection failed on {image_path}: {e}") from e
        detections = normalize_detections(raw)
        dups = duplicate_ids(detections)
        if dups:
            logger.warning("Detector returned duplicate tag ids %s for %s", dups, image_path)
        return detections


def format_corners(detections: Iterable[Detection]) -> list[str]:
    lines = []
    for d in sorted(detections, key=lambda d: d.tag_id):
        pts = ", ".join(f"({x:.2f}, {y:.2f})" for x, y in d.corners)
        lines.append(f"Tag {d.tag_id}: {pts}")
    return lines
