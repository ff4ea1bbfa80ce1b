"""
Host integration: a pre-render hook that builds every derivative and a
post-render hook that rewrites each rendered document.

The host is anything exposing ``extend.filter.register(event, fn)``; a
``config`` mapping (or object) holding a ``responsive_images`` group; and
``source_dir`` / ``theme_dir`` paths. Hosts without the filter extension
point are left alone.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

from .codec import PillowCodec
from .config import PipelineConfig, resolve_config
from .discovery import collect_images
from .errors import CodecError, UnsupportedFormatError
from .generator import DerivativeGenerator
from .models import Derivative
from .planner import plan
from .registry import AssetRegistry
from .rewriter import MarkupRewriter

logger = logging.getLogger(__name__)

CONFIG_KEY = "responsive_images"
PRE_RENDER_EVENT = "before_generate"
RENDER_EVENTS = ("after_render:html", "after_render:css")


def _host_overrides(host: Any) -> Mapping:
    cfg = getattr(host, "config", None)
    if cfg is None:
        return {}
    if isinstance(cfg, Mapping):
        return cfg.get(CONFIG_KEY) or {}
    return getattr(cfg, CONFIG_KEY, None) or {}


class Pipeline:
    """One build's worth of state: resolved config, registry, rewriter."""

    def __init__(
        self,
        overrides: Optional[Mapping] = None,
        source_dirs: Sequence = (),
        base_dir=None,
        codec: Optional[PillowCodec] = None,
    ) -> None:
        self.overrides = overrides or {}
        self.source_dirs = [Path(d) for d in source_dirs]
        self.base_dir = Path(base_dir) if base_dir else None
        self.codec = codec
        self.config: Optional[PipelineConfig] = None
        self.registry: Optional[AssetRegistry] = None
        self._rewriter: Optional[MarkupRewriter] = None

    @classmethod
    def from_host(cls, host: Any) -> "Pipeline":
        source_dir = getattr(host, "source_dir", None)
        theme_dir = getattr(host, "theme_dir", None)
        return cls(
            overrides=_host_overrides(host),
            source_dirs=[d for d in (source_dir, theme_dir) if d],
            base_dir=source_dir,
        )

    def before_generate(self, *args: Any) -> AssetRegistry:
        """Resolve config, discover, generate. DiscoveryError propagates."""
        self.config = resolve_config(self.overrides)
        paths = collect_images(self.source_dirs, self.config.sizes)
        registry = DerivativeGenerator(self.config, self.codec).run(paths)

        if self.config.manifest:
            out = Path(self.config.manifest)
            if not out.is_absolute() and self.base_dir is not None:
                out = self.base_dir / out
            count = registry.write_manifest(out)
            logger.info("Wrote %d entries to %s", count, out)

        self.registry = registry
        self._rewriter = MarkupRewriter(registry, self.config, self.base_dir)
        return registry

    def after_render(self, text: str, *args: Any) -> str:
        if self._rewriter is None:
            logger.debug("post-render before generation; text left as is")
            return text
        return self._rewriter.rewrite(text)

    def dry_run(self) -> List[Tuple[Path, List[Derivative]]]:
        """Probe and plan only; nothing is written."""
        config = resolve_config(self.overrides)
        generator = DerivativeGenerator(config, self.codec)
        planned: List[Tuple[Path, List[Derivative]]] = []
        for p in collect_images(self.source_dirs, config.sizes):
            try:
                derivatives = plan(generator.probe(p), config)
            except UnsupportedFormatError as e:
                logger.warning("SKIP  %s: %s", p.name, e)
                continue
            except CodecError as e:
                logger.error("ERR   %s: %s", p.name, e)
                continue
            logger.info("DRY   %s -> %s", p.name, [d.path.name for d in derivatives])
            planned.append((p, derivatives))
        return planned


def register(host: Any) -> Optional[Pipeline]:
    """Attach both hooks to host; returns None if host has no filter API."""
    filters = getattr(getattr(host, "extend", None), "filter", None)
    hook = getattr(filters, "register", None)
    if not callable(hook):
        return None
    pipeline = Pipeline.from_host(host)
    hook(PRE_RENDER_EVENT, pipeline.before_generate)
    for event in RENDER_EVENTS:
        hook(event, pipeline.after_render)
    return pipeline
