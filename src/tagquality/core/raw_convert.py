from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import numpy as np
import rawpy
from PIL import Image

from tagquality.errors import ConversionError


@dataclass(frozen=True)
class ConversionOptions:
    use_camera_wb: bool = True
    jpeg_subsampling: int = 0  # 4:4:4, keeps chroma detail around tag edges
    jpeg_optimize: bool = True


def jpeg_quality(quality: float) -> int:
    """Map a [0, 1] quality to Pillow's 0..100 JPEG scale."""
    q = float(quality)
    if not 0.0 <= q <= 1.0:
        raise ValueError(f"quality must be in [0, 1], got {quality}")
    return max(0, min(100, int(round(q * 100.0))))


def quality_tag(quality: float) -> str:
    return f"q{float(quality):.2f}"


class RawConverter:
    """
    Decode RAW photographs and write a lossless PNG reference or a JPEG.

    Every call decodes the source again; no pixel data outlives a call.
    """

    def __init__(self, work_dir: Path, options: ConversionOptions | None = None) -> None:
        self.work_dir = Path(work_dir)
        self.options = options or ConversionOptions()
        self.work_dir.mkdir(parents=True, exist_ok=True)

    def reference_path(self, source: Path) -> Path:
        return self.work_dir / f"{Path(source).stem}_ref.png"

    def compressed_path(self, source: Path, quality: float) -> Path:
        return self.work_dir / f"{Path(source).stem}_{quality_tag(quality)}.jpg"

    def to_reference(self, source: Path) -> Path:
        dst = self.reference_path(source)
        rgb = self._decode(Path(source))
        try:
            Image.fromarray(rgb).save(dst, format="PNG")
        except OSError as e:
            raise ConversionError(f"Cannot write {dst}: {e}") from e
        return dst

    def to_compressed(self, source: Path, quality: float) -> Path:
        q = jpeg_quality(quality)
        dst = self.compressed_path(source, quality)
        rgb = self._decode(Path(source))
        try:
            Image.fromarray(rgb).save(
                dst,
                format="JPEG",
                quality=q,
                optimize=self.options.jpeg_optimize,
                progressive=False,
                subsampling=self.options.jpeg_subsampling,
            )
        except OSError as e:
            raise ConversionError(f"Cannot write {dst}: {e}") from e
        return dst

    def _decode(self, source: Path) -> np.ndarray:
        try:
            with rawpy.imread(str(source)) as raw:
                rgb = raw.postprocess(use_camera_wb=self.options.use_camera_wb, output_bps=8)
        except (rawpy.LibRawError, OSError) as e:
            raise ConversionError(f"Cannot decode RAW file {source}: {e}") from e
        return rgb
