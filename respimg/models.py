"""Build-scoped value types: sources, derivatives and their records."""

import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import List, Optional, Tuple

from .config import SizeProfile

FOREGROUND = "foreground"
BACKGROUND = "background"

# Path tokens that mark an image as a CSS background rather than content
BACKGROUND_TOKENS = ("background", "bg-", "hero")

NEXT_GEN_FORMAT = "webp"
EXTENSIONS = {"webp": "webp", "jpeg": "jpg", "png": "png"}
MIME_TYPES = {"webp": "image/webp", "jpeg": "image/jpeg", "png": "image/png"}


def classify(path) -> str:
    """Bucket a source by its path text alone."""
    text = os.fspath(path).lower()
    if any(token in text for token in BACKGROUND_TOKENS):
        return BACKGROUND
    return FOREGROUND


@dataclass(frozen=True)
class SourceImage:
    path: Path
    format: str
    width: int
    height: int
    classification: str = FOREGROUND

    @property
    def key(self) -> str:
        return os.fspath(self.path)


@dataclass(frozen=True)
class Derivative:
    source: Path
    size: SizeProfile
    format: str
    path: Path
    height: Optional[int] = None

    @property
    def width(self) -> int:
        return self.size.width

    @property
    def mime_type(self) -> str:
        return MIME_TYPES[self.format]


def derivative_path(source: Path, size: SizeProfile, fmt: str) -> Path:
    """<dir>/<baseName>-<sizeName>.<ext>, next to the source."""
    return source.parent / f"{source.stem}-{size.name}.{EXTENSIONS[fmt]}"


@dataclass(frozen=True)
class AssetRecord:
    source: SourceImage
    derivatives: Tuple[Derivative, ...]

    @property
    def key(self) -> str:
        return self.source.key

    @property
    def classification(self) -> str:
        return self.source.classification

    @property
    def directory(self) -> Path:
        return self.source.path.parent

    @property
    def width(self) -> int:
        return self.source.width

    @property
    def height(self) -> int:
        return self.source.height

    @property
    def format(self) -> str:
        return self.source.format

    def get(self, size_name: str, fmt: str) -> Derivative:
        for d in self.derivatives:
            if d.size.name == size_name and d.format == fmt:
                return d
        raise KeyError((size_name, fmt))

    def by_format(self, fmt: str) -> List[Derivative]:
        return [d for d in self.derivatives if d.format == fmt]

    def references(self, base_dir: Optional[Path] = None) -> List[str]:
        """
        Literal strings rendered text may use for this source: the full
        path as discovered plus, when it lies under base_dir, the
        base-relative URL with and without a leading slash.
        """
        refs = [self.key]
        if base_dir is not None:
            try:
                rel = PurePosixPath(self.source.path.relative_to(base_dir).as_posix())
            except ValueError:
                rel = None
            if rel is not None:
                refs += [str(rel), f"/{rel}"]
        return list(dict.fromkeys(refs))
