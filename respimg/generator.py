"""
Generate derivatives for discovered sources and collect them into a registry.

Each source is handled start to finish by one worker: probe, plan, resize
per tier, encode per format, write. Any failure for a source discards that
source entirely; the batch always continues. Workers return records and
never touch the registry. The calling thread inserts them in discovery
order and freezes the registry once every worker has finished.
"""

import concurrent.futures as cf
import dataclasses
import logging
from itertools import groupby
from pathlib import Path
from typing import List, Optional, Sequence

from .codec import PillowCodec
from .config import PipelineConfig
from .errors import CodecError, FilesystemError, UnsupportedFormatError
from .models import AssetRecord, Derivative, SourceImage, classify
from .planner import plan
from .registry import AssetRegistry

logger = logging.getLogger(__name__)


class DerivativeGenerator:
    def __init__(self, config: PipelineConfig, codec: Optional[PillowCodec] = None) -> None:
        self.config = config
        self.codec = codec or PillowCodec()

    def probe(self, path: Path) -> SourceImage:
        fmt, width, height = self.codec.probe(path)
        return SourceImage(path=path, format=fmt, width=width, height=height, classification=classify(path))

    def generate(self, path: Path) -> Optional[AssetRecord]:
        """Produce every planned derivative for one source, or None."""
        try:
            source = self.probe(path)
            planned = plan(source, self.config)
            derivatives = self._render(source, planned)
            if self.config.optimize_originals:
                self._optimise_original(source)
        except UnsupportedFormatError as e:
            logger.warning("SKIP  %s: %s", path.name, e)
            return None
        except (CodecError, FilesystemError) as e:
            logger.error("ERR   %s: %s", path.name, e)
            return None
        except Exception as e:
            logger.error("ERR   %s: unexpected %s: %s", path.name, type(e).__name__, e)
            return None

        logger.info("DONE  %s [%sx%s] -> %s", path.name, source.width, source.height,
                    [s.name for s in self.config.sizes])
        return AssetRecord(source=source, derivatives=tuple(derivatives))

    def _render(self, source: SourceImage, planned: List[Derivative]) -> List[Derivative]:
        done: List[Derivative] = []
        with self.codec.open(source.path) as im:
            for size, group in groupby(planned, key=lambda d: d.size):
                resized = self.codec.resize(im, size.width)
                for d in group:
                    # Existing files are overwritten; every build re-encodes
                    self.codec.write(d.path, self.codec.encode(resized, d.format, self.config))
                    done.append(dataclasses.replace(d, height=resized.height))
                    logger.debug("wrote %s", d.path)
        return done

    def _optimise_original(self, source: SourceImage) -> None:
        """Re-encode the source in place with its own format's options."""
        with self.codec.open(source.path) as im:
            data = self.codec.encode(im, source.format, self.config)
        self.codec.write(source.path, data)
        logger.debug("optimised %s", source.path)

    def run(self, paths: Sequence[Path]) -> AssetRegistry:
        """Generate for all paths with a bounded pool; return a frozen registry."""
        registry = AssetRegistry()
        with cf.ThreadPoolExecutor(max_workers=self.config.workers) as ex:
            futures = [ex.submit(self.generate, p) for p in paths]
            for fut in futures:
                record = fut.result()
                if record is not None:
                    registry.add(record)
        registry.freeze()
        logger.info("Generated derivatives for %d of %d image(s)", len(registry), len(paths))
        return registry
