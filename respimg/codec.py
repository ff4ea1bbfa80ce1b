"""Pillow-backed probe / resize / encode / write."""

import contextlib
import io
import os
from pathlib import Path
from typing import Any, Dict, Tuple

from PIL import Image, UnidentifiedImageError

from .config import PipelineConfig
from .errors import CodecError, FilesystemError

# Pillow names multi-picture camera JPEGs "MPO"
FORMAT_ALIASES = {"jpg": "jpeg", "mpo": "jpeg"}
PIL_FORMATS = {"jpeg": "JPEG", "png": "PNG", "webp": "WEBP"}

CODEC_ERRORS = (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError)


def normalise_format(fmt: str) -> str:
    fmt = (fmt or "").lower()
    return FORMAT_ALIASES.get(fmt, fmt)


def has_alpha(im: Image.Image) -> bool:
    return ("A" in im.mode) or (im.info.get("transparency") is not None)


def prepare_mode(im: Image.Image, fmt: str) -> Image.Image:
    """Convert to a mode the target encoder accepts."""
    if fmt == "jpeg":
        return im if im.mode in ("RGB", "L") else im.convert("RGB")
    if fmt == "webp":
        if im.mode in ("RGB", "RGBA"):
            return im
        return im.convert("RGBA" if has_alpha(im) else "RGB")
    if im.mode == "CMYK":
        return im.convert("RGB")
    return im


def encode_kwargs(fmt: str, config: PipelineConfig) -> Dict[str, Any]:
    if fmt == "jpeg":
        return {"quality": config.jpeg.quality, "progressive": config.jpeg.progressive, "optimize": True}
    if fmt == "png":
        return {"compress_level": config.png.compression_level, "optimize": True}
    if fmt == "webp":
        return {"quality": config.webp.quality, "method": 6}
    raise CodecError(f"no encoder for {fmt}")


class PillowCodec:
    """The codec contract the generator drives."""

    def probe(self, path: Path) -> Tuple[str, int, int]:
        try:
            with Image.open(path) as im:
                w, h = im.size
                return normalise_format(im.format), w, h
        except CODEC_ERRORS as e:
            raise CodecError(f"probe failed: {e}") from e

    def open(self, path: Path) -> Image.Image:
        try:
            im = Image.open(path)
        except CODEC_ERRORS as e:
            raise CodecError(f"decode failed: {e}") from e
        try:
            im.load()
        except CODEC_ERRORS as e:
            im.close()
            raise CodecError(f"decode failed: {e}") from e
        return im

    def resize(self, im: Image.Image, width: int) -> Image.Image:
        """Aspect-preserving resize to an exact width; no upscale guard."""
        height = max(1, round(im.height * width / im.width))
        try:
            return im.resize((width, height), Image.Resampling.LANCZOS)
        except CODEC_ERRORS as e:
            raise CodecError(f"resize to {width}px failed: {e}") from e

    def encode(self, im: Image.Image, fmt: str, config: PipelineConfig) -> bytes:
        kwargs = encode_kwargs(fmt, config)
        buf = io.BytesIO()
        try:
            prepare_mode(im, fmt).save(buf, format=PIL_FORMATS[fmt], **kwargs)
        except CODEC_ERRORS as e:
            raise CodecError(f"{fmt} encode failed: {e}") from e
        return buf.getvalue()

    def write(self, target: Path, data: bytes) -> None:
        """Write through a .tmp sibling and rename over the target."""
        tmp = target.with_name(target.name + ".tmp")
        try:
            with open(tmp, "wb") as f:
                f.write(data)
            os.replace(tmp, target)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise FilesystemError(f"write {target.name} failed: {e}") from e
