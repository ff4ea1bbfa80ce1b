"""Decide which derivatives a probed source needs."""

from typing import List, Tuple

from .config import PipelineConfig
from .errors import UnsupportedFormatError
from .models import NEXT_GEN_FORMAT, Derivative, SourceImage, derivative_path

SUPPORTED_FORMATS = ("jpeg", "png")


def target_formats(source_format: str) -> Tuple[str, ...]:
    """Next-gen format first, then the source's own format as raster fallback."""
    return (NEXT_GEN_FORMAT, source_format)


def plan(source: SourceImage, config: PipelineConfig) -> List[Derivative]:
    """
    Cross product of configured size tiers and target formats, size-major.

    Widths are taken as configured even when they exceed the source's own
    width. Formats other than JPEG/PNG raise UnsupportedFormatError, which
    stands for an empty plan.
    """
    if source.format not in SUPPORTED_FORMATS:
        raise UnsupportedFormatError(source.path, source.format)
    return [
        Derivative(
            source=source.path,
            size=size,
            format=fmt,
            path=derivative_path(source.path, size, fmt),
        )
        for size in config.sizes
        for fmt in target_formats(source.format)
    ]
