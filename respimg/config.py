"""
Size tiers, per-format encode options and host override resolution.

Overrides are merged one level deep per named group: a partial ``jpeg``
override replaces only the keys it carries and leaves its siblings at their
defaults. Each group has its own merge function so the accepted keys and
their types are explicit.
"""

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple


@dataclass(frozen=True)
class SizeProfile:
    name: str
    width: int


DEFAULT_SIZES: Tuple[SizeProfile, ...] = (
    SizeProfile("small", 480),
    SizeProfile("medium", 768),
    SizeProfile("large", 1280),
    SizeProfile("xl", 1920),
)
# Tiers the rewriter addresses by name: medium is the <img> fallback,
# small/medium/large map to the 1x/2x/3x background candidates.
REQUIRED_TIERS = ("small", "medium", "large")

DEFAULT_QUALITY = 80


@dataclass
class JpegOptions:
    quality: int = DEFAULT_QUALITY
    progressive: bool = True


@dataclass
class PngOptions:
    # Pillow's PNG writer is lossless; quality is accepted for parity with
    # host configs but only compression_level reaches the encoder.
    quality: int = DEFAULT_QUALITY
    compression_level: int = 9


@dataclass
class WebpOptions:
    quality: int = DEFAULT_QUALITY


@dataclass
class BackgroundOptions:
    enabled: bool = True
    selector: str = ""
    css_class: str = "bg-responsive"
    inject_css: bool = True

    @property
    def style_selector(self) -> str:
        """Selector the injected style block is scoped to."""
        return self.selector or f".{self.css_class}"


@dataclass
class PictureOptions:
    sizes: Optional[str] = None
    loading: Optional[str] = None


@dataclass
class PipelineConfig:
    quality: int = DEFAULT_QUALITY
    jpeg: JpegOptions = field(default_factory=JpegOptions)
    png: PngOptions = field(default_factory=PngOptions)
    webp: WebpOptions = field(default_factory=WebpOptions)
    background_images: BackgroundOptions = field(default_factory=BackgroundOptions)
    picture: PictureOptions = field(default_factory=PictureOptions)
    sizes: Tuple[SizeProfile, ...] = DEFAULT_SIZES
    workers: int = field(default_factory=lambda: os.cpu_count() or 4)
    optimize_originals: bool = False
    manifest: Optional[str] = None

    @property
    def largest(self) -> SizeProfile:
        return self.sizes[-1]


# ---------- Value coercion ----------

_MISSING = object()


def _lookup(override: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in override:
            return override[key]
    return _MISSING


def _int(override: Mapping[str, Any], keys: Tuple[str, ...], default: int,
         lo: Optional[int] = None, hi: Optional[int] = None) -> int:
    value = _lookup(override, *keys)
    if value is _MISSING:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{keys[0]} must be an integer, got {value!r}")
    if (lo is not None and value < lo) or (hi is not None and value > hi):
        raise ValueError(f"{keys[0]} out of range [{lo}, {hi}]: {value}")
    return value


def _bool(override: Mapping[str, Any], keys: Tuple[str, ...], default: bool) -> bool:
    value = _lookup(override, *keys)
    if value is _MISSING:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"{keys[0]} must be true or false, got {value!r}")
    return value


def _str(override: Mapping[str, Any], keys: Tuple[str, ...], default: Optional[str]) -> Optional[str]:
    value = _lookup(override, *keys)
    if value is _MISSING:
        return default
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{keys[0]} must be a string, got {value!r}")
    return value


def _group(overrides: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = overrides.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ValueError(f"{name} must be a mapping, got {type(value).__name__}")
    return value


# ---------- Per-group merges ----------

def merge_jpeg(base: JpegOptions, override: Mapping[str, Any]) -> JpegOptions:
    return JpegOptions(
        quality=_int(override, ("quality",), base.quality, 1, 100),
        progressive=_bool(override, ("progressive",), base.progressive),
    )


def merge_png(base: PngOptions, override: Mapping[str, Any]) -> PngOptions:
    return PngOptions(
        quality=_int(override, ("quality",), base.quality, 1, 100),
        compression_level=_int(override, ("compressionLevel", "compression_level"),
                               base.compression_level, 0, 9),
    )


def merge_webp(base: WebpOptions, override: Mapping[str, Any]) -> WebpOptions:
    return WebpOptions(quality=_int(override, ("quality",), base.quality, 1, 100))


def merge_background(base: BackgroundOptions, override: Mapping[str, Any]) -> BackgroundOptions:
    return BackgroundOptions(
        enabled=_bool(override, ("enabled",), base.enabled),
        selector=_str(override, ("selector",), base.selector) or "",
        css_class=_str(override, ("class", "css_class"), base.css_class) or base.css_class,
        inject_css=_bool(override, ("inject_css", "injectCss"), base.inject_css),
    )


def merge_picture(base: PictureOptions, override: Mapping[str, Any]) -> PictureOptions:
    return PictureOptions(
        sizes=_str(override, ("sizes",), base.sizes),
        loading=_str(override, ("loading",), base.loading),
    )


def merge_sizes(base: Tuple[SizeProfile, ...], override: Mapping[str, Any]) -> Tuple[SizeProfile, ...]:
    """
    Replace widths of named tiers and add new ones; result sorted by width.
    Example override: {"xl": 2400, "thumb": 160}
    """
    widths: Dict[str, int] = {s.name: s.width for s in base}
    for name in override:
        if not isinstance(name, str) or not name:
            raise ValueError(f"size tier names must be non-empty strings, got {name!r}")
        widths[name] = _int(override, (name,), 0, 1)
    missing = [t for t in REQUIRED_TIERS if t not in widths]
    if missing:
        raise ValueError(f"sizes must define tiers: {', '.join(missing)}")
    return tuple(sorted((SizeProfile(n, w) for n, w in widths.items()), key=lambda s: (s.width, s.name)))


def resolve_config(overrides: Optional[Mapping[str, Any]] = None) -> PipelineConfig:
    """
    Build the effective configuration from host-supplied overrides.

    A top-level ``quality`` seeds every encode group whose own override does
    not set one.
    """
    overrides = overrides or {}
    if not isinstance(overrides, Mapping):
        raise ValueError(f"configuration must be a mapping, got {type(overrides).__name__}")
    defaults = PipelineConfig()
    quality = _int(overrides, ("quality",), DEFAULT_QUALITY, 1, 100)

    return PipelineConfig(
        quality=quality,
        jpeg=merge_jpeg(JpegOptions(quality=quality), _group(overrides, "jpeg")),
        png=merge_png(PngOptions(quality=quality), _group(overrides, "png")),
        webp=merge_webp(WebpOptions(quality=quality), _group(overrides, "webp")),
        background_images=merge_background(BackgroundOptions(), _group(overrides, "background_images")),
        picture=merge_picture(PictureOptions(), _group(overrides, "picture")),
        sizes=merge_sizes(DEFAULT_SIZES, _group(overrides, "sizes")),
        workers=_int(overrides, ("workers",), defaults.workers, 1),
        optimize_originals=_bool(overrides, ("optimize_originals", "optimizeOriginals"), False),
        manifest=_str(overrides, ("manifest",), None),
    )
