"""Find source images under the configured trees."""

import logging
import os
from pathlib import Path
from typing import Iterable, List, Sequence

from .config import SizeProfile
from .errors import DiscoveryError

logger = logging.getLogger(__name__)

IMAGE_EXTS = {".jpg", ".jpeg", ".png"}

# Transient and editor artefacts to ignore
TRANSIENT_SUFFIXES = {".swp", ".tmp", ".bak"}


def is_transient(p: Path) -> bool:
    n = p.name
    return (
        n.startswith(".#")         # Emacs lockfiles
        or n.endswith("~")         # backup files
        or n == ".DS_Store"
        or p.suffix.lower() in TRANSIENT_SUFFIXES
    )


def is_derivative(p: Path, sizes: Iterable[SizeProfile]) -> bool:
    """<stem>-<tier>.<ext> files are outputs of an earlier build."""
    return any(p.stem.endswith(f"-{s.name}") for s in sizes)


def _raise(err: OSError) -> None:
    raise err


def collect_images(roots: Sequence[Path], sizes: Sequence[SizeProfile]) -> List[Path]:
    """
    Walk each root in turn and return image paths in a stable order.
    Missing roots contribute nothing; any error while walking is fatal.
    """
    found: List[Path] = []
    for root in roots:
        if not root.is_dir():
            logger.debug("no such directory: %s", root)
            continue
        try:
            for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
                dirnames.sort()
                for name in sorted(filenames):
                    p = Path(dirpath) / name
                    if p.suffix.lower() not in IMAGE_EXTS or is_transient(p) or is_derivative(p, sizes):
                        continue
                    found.append(p)
        except OSError as e:
            raise DiscoveryError(f"cannot scan {root}: {e}") from e
    logger.info("Found %d image(s) in %s", len(found), ", ".join(str(r) for r in roots))
    return found
