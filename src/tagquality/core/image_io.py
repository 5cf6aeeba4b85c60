from __future__ import annotations

from pathlib import Path

import numpy as np
from PIL import Image, UnidentifiedImageError

from tagquality.errors import ImageLoadError


def load_gray_u8(path: str | Path) -> np.ndarray:
    """
    Load an image as a C-contiguous grayscale uint8 array.

    Primary backend is OpenCV (if installed). Pillow is used as a fallback,
    which covers OpenCV builds lacking some codec support.
    """
    p = Path(path)
    if not p.is_file():
        raise ImageLoadError(f"Missing image {p}")

    try:
        import cv2  # type: ignore

        img = cv2.imread(str(p), cv2.IMREAD_GRAYSCALE)
        if img is not None:
            if img.dtype != np.uint8:
                img = np.clip(img, 0, 255).astype(np.uint8)
            return np.ascontiguousarray(img)
    except ImportError:
        # Fall back to Pillow below.
        pass

    try:
        with Image.open(p) as im:
            im = im.convert("L")
            arr = np.asarray(im, dtype=np.uint8)
    except (UnidentifiedImageError, OSError) as e:
        raise ImageLoadError(f"Cannot decode image {p}: {e}") from e
    return np.ascontiguousarray(arr)
