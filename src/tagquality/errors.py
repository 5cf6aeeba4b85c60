from __future__ import annotations


class TagQualityError(Exception):
    pass


class SetupError(TagQualityError):
    """No usable RAW source directory could be resolved."""


class ConversionError(TagQualityError):
    pass


class DetectionError(TagQualityError):
    pass


class ImageLoadError(DetectionError):
    pass
