"""Build-scoped store of generated derivatives, split foreground/background."""

import csv
import os
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional

from .models import BACKGROUND, AssetRecord

MANIFEST_FIELDS = ["source", "bucket", "size", "format", "width", "height", "path"]


class AssetRegistry:
    """
    Maps full source path -> AssetRecord in two buckets.

    Filled by the generator's collector, then frozen; the rewrite phase only
    reads it. One instance per build, never shared across builds.
    """

    def __init__(self) -> None:
        self._foreground: Dict[str, AssetRecord] = {}
        self._background: Dict[str, AssetRecord] = {}
        self._frozen = False

    def add(self, record: AssetRecord) -> None:
        if self._frozen:
            raise RuntimeError("registry is frozen; generation phase has ended")
        bucket = self._background if record.classification == BACKGROUND else self._foreground
        bucket[record.key] = record

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def foreground(self) -> Mapping[str, AssetRecord]:
        return MappingProxyType(self._foreground)

    @property
    def background(self) -> Mapping[str, AssetRecord]:
        return MappingProxyType(self._background)

    def get(self, path) -> Optional[AssetRecord]:
        key = os.fspath(path)
        return self._foreground.get(key) or self._background.get(key)

    def __contains__(self, path) -> bool:
        return self.get(path) is not None

    def __iter__(self) -> Iterator[AssetRecord]:
        yield from self._foreground.values()
        yield from self._background.values()

    def __len__(self) -> int:
        return len(self._foreground) + len(self._background)

    def write_manifest(self, out_csv: Path) -> int:
        """One CSV row per derivative. Returns the row count."""
        rows = []
        for record in self:
            for d in record.derivatives:
                rows.append({
                    "source": record.key,
                    "bucket": record.classification,
                    "size": d.size.name,
                    "format": d.format,
                    "width": d.width,
                    "height": d.height if d.height is not None else "",
                    "path": os.fspath(d.path),
                })
        out_csv.parent.mkdir(parents=True, exist_ok=True)
        with out_csv.open("w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=MANIFEST_FIELDS)
            writer.writeheader()
            writer.writerows(rows)
        return len(rows)
