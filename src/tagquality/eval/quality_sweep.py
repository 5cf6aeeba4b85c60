from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Protocol, Sequence

from tagquality.core.stats import summarize
from tagquality.errors import ConversionError, DetectionError, SetupError
from tagquality.eval.deltas import compute_deltas
from tagquality.eval.tag_detection import Detection, format_corners

logger = logging.getLogger(__name__)

QUALITY_VALUES: tuple[float, ...] = (0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9)
RAW_EXTENSION = ".arw"


class Converter(Protocol):
    def to_reference(self, source: Path) -> Path: ...

    def to_compressed(self, source: Path, quality: float) -> Path: ...


class Detector(Protocol):
    def detect(self, image_path: Path) -> list[Detection]: ...


@dataclass(frozen=True)
class QualityResult:
    quality: float
    min: float
    mean: float
    median: float
    max: float
    missing_markers: int
    mean_file_size_bytes: float = 0.0
    n_images: int = 0
    n_failed: int = 0

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class ScatterRecord:
    quality: float
    image: str
    mean: float
    min: float
    max: float

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass
class SweepResult:
    results: list[QualityResult] = field(default_factory=list)
    scatter: list[ScatterRecord] = field(default_factory=list)


def discover_raw_files(raw_dir: Path, subset: int | None = None, extension: str = RAW_EXTENSION) -> list[Path]:
    raw_dir = Path(raw_dir)
    if not raw_dir.is_dir():
        raise SetupError(f"RAW directory does not exist: {raw_dir}")

    ext = extension.lower()
    files = sorted(p for p in raw_dir.iterdir() if p.is_file() and p.suffix.lower() == ext)
    if subset is not None and 0 < subset < len(files):
        files = files[:subset]
    return files


def _unlink(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not delete %s: %s", path, e)


def _file_size(path: Path) -> int | None:
    try:
        return path.stat().st_size
    except OSError:
        return None


def _print_corners(title: str, detections: list[Detection]) -> None:
    print(f"\n  {title}:")
    for line in format_corners(detections):
        print(f"    {line}")


def run_quality_sweep(
    files: Sequence[Path],
    converter: Converter,
    detector: Detector,
    qualities: Sequence[float] = QUALITY_VALUES,
    preserve: bool = False,
    print_corners: bool = False,
    collect_scatter: bool = True,
) -> SweepResult:
    """
    Compare tag corners detected on JPEGs against a lossless reference.

    Qualities are processed in order and, within each quality, files in
    order. Reference detections depend only on the file, so they are computed
    on first use and reused for every later quality. A file whose reference
    cannot be produced is skipped for all qualities; a failing (file, quality)
    pair is skipped for that quality only.
    """
    sweep = SweepResult()
    references: dict[Path, list[Detection] | None] = {}

    for quality in qualities:
        print(f"\nProcessing quality: {quality}")
        pool: list[float] = []
        missing_total = 0
        sizes: list[int] = []
        n_images = 0
        n_failed = 0

        for source in files:
            source = Path(source)
            if source not in references:
                references[source] = _reference_detections(source, converter, detector, preserve, print_corners)
            reference = references[source]
            if reference is None:
                n_failed += 1
                continue

            jpeg_path: Path | None = None
            try:
                jpeg_path = converter.to_compressed(source, quality)
                if preserve:
                    print(f"  JPEG (q={quality}): {jpeg_path}")
                size = _file_size(jpeg_path)
                comparison = detector.detect(jpeg_path)
            except (ConversionError, DetectionError) as e:
                logger.error("Skipping %s at quality %s: %s", source.name, quality, e)
                n_failed += 1
                continue
            finally:
                if jpeg_path is not None and not preserve:
                    _unlink(jpeg_path)

            print(f"  {source.name}: {len(comparison)} markers detected (JPEG q={quality})")
            if print_corners:
                _print_corners(f"JPEG (q={quality}) corners for {source.name}", comparison)

            res = compute_deltas(reference, comparison)
            pool.extend(res.deltas)
            missing_total += res.missing
            n_images += 1
            if size is not None:
                sizes.append(size)

            if collect_scatter and res.deltas:
                s = summarize(res.deltas)
                sweep.scatter.append(ScatterRecord(quality=quality, image=source.name, mean=s.mean, min=s.min, max=s.max))

        stats = summarize(pool)
        sweep.results.append(
            QualityResult(
                quality=quality,
                min=stats.min,
                mean=stats.mean,
                median=stats.median,
                max=stats.max,
                missing_markers=missing_total,
                mean_file_size_bytes=(sum(sizes) / len(sizes)) if sizes else 0.0,
                n_images=n_images,
                n_failed=n_failed,
            )
        )
        if n_failed:
            logger.warning("Quality %s: %d of %d files skipped", quality, n_failed, len(files))

    return sweep


def _reference_detections(
    source: Path,
    converter: Converter,
    detector: Detector,
    preserve: bool,
    print_corners: bool,
) -> list[Detection] | None:
    ref_path: Path | None = None
    try:
        ref_path = converter.to_reference(source)
        if preserve:
            print(f"  PNG: {ref_path}")
        reference = detector.detect(ref_path)
    except (ConversionError, DetectionError) as e:
        logger.error("Skipping %s, no lossless reference: %s", source.name, e)
        return None
    finally:
        if ref_path is not None and not preserve:
            _unlink(ref_path)

    print(f"  {source.name}: {len(reference)} markers detected (reference)")
    if print_corners:
        _print_corners(f"Reference corners for {source.name}", reference)
    return reference
