from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from tagquality.config import DetectorConfig
from tagquality.errors import DetectionError
from tagquality.eval.tag_detection import Detection, TagDetector, format_corners, normalize_detections


@dataclass
class _RawTag:
    tag_id: int
    corners: np.ndarray


class _FakeBackend:
    def __init__(self, tags: list[_RawTag]) -> None:
        self.tags = tags
        self.calls: list[np.ndarray] = []

    def detect(self, img: np.ndarray) -> list[_RawTag]:
        self.calls.append(img)
        return self.tags


def _write_gray(path: Path, w: int = 16, h: int = 12) -> Path:
    Image.fromarray(np.zeros((h, w), dtype=np.uint8), mode="L").save(path)
    return path


def test_normalize_keeps_corner_order():
    corners = np.array([[10.0, 20.0], [30.0, 20.0], [30.0, 40.0], [10.0, 40.0]])
    (det,) = normalize_detections([_RawTag(tag_id=np.int64(7), corners=corners)])
    assert det == Detection(tag_id=7, corners=((10.0, 20.0), (30.0, 20.0), (30.0, 40.0), (10.0, 40.0)))
    assert isinstance(det.tag_id, int)


def test_normalize_drops_malformed_corners(caplog):
    bad = _RawTag(tag_id=3, corners=np.zeros((3, 2)))
    with caplog.at_level(logging.WARNING):
        assert normalize_detections([bad]) == []
    assert "Dropping tag 3" in caplog.text


def test_detector_reuses_backend_and_feeds_gray_u8(tmp_path: Path):
    backend = _FakeBackend([_RawTag(tag_id=1, corners=np.ones((4, 2)))])
    detector = TagDetector(backend=backend)
    img = _write_gray(tmp_path / "a.png")

    assert len(detector.detect(img)) == 1
    assert len(detector.detect(img)) == 1
    assert len(backend.calls) == 2
    assert backend.calls[0].dtype == np.uint8
    assert backend.calls[0].shape == (12, 16)
    assert detector.config == DetectorConfig()


def test_detector_logs_duplicate_ids(tmp_path: Path, caplog):
    backend = _FakeBackend([_RawTag(tag_id=4, corners=np.ones((4, 2))), _RawTag(tag_id=4, corners=np.zeros((4, 2)))])
    detector = TagDetector(backend=backend)
    with caplog.at_level(logging.WARNING):
        dets = detector.detect(_write_gray(tmp_path / "dup.png"))
    assert [d.tag_id for d in dets] == [4, 4]
    assert "duplicate tag ids [4]" in caplog.text


def test_detector_raises_on_missing_or_corrupt_image(tmp_path: Path):
    detector = TagDetector(backend=_FakeBackend([]))
    with pytest.raises(DetectionError):
        detector.detect(tmp_path / "nope.png")

    junk = tmp_path / "junk.jpg"
    junk.write_bytes(b"not an image")
    with pytest.raises(DetectionError):
        detector.detect(junk)


def test_format_corners_sorted_by_id():
    dets = [
        Detection(tag_id=9, corners=((1.0, 2.0), (3.0, 4.0), (5.0, 6.0), (7.0, 8.0))),
        Detection(tag_id=2, corners=((0.125, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))),
    ]
    lines = format_corners(dets)
    assert lines[0] == "Tag 2: (0.12, 0.00), (1.00, 0.00), (1.00, 1.00), (0.00, 1.00)"
    assert lines[1].startswith("Tag 9: (1.00, 2.00)")


@pytest.mark.integration
def test_real_detector_on_blank_image(tmp_path: Path):
    pytest.importorskip("pupil_apriltags")
    detector = TagDetector(DetectorConfig(family="tag36h11", nthreads=1))
    assert detector.detect(_write_gray(tmp_path / "blank.png", w=64, h=48)) == []


class _ExplodingBackend:
    def detect(self, img: np.ndarray):
        raise RuntimeError("detector crashed")


def test_backend_failure_becomes_detection_error(tmp_path: Path):
    detector = TagDetector(backend=_ExplodingBackend())
    with pytest.raises(DetectionError, match="detector crashed"):
        detector.detect(_write_gray(tmp_path / "a.png"))
