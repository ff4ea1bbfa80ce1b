#!/usr/bin/env python3
"""
Responsive image build step for a static site tree.

- Finds .jpg/.jpeg/.png under source/ and themes/.
- Writes {stem}-{tier}.webp and {stem}-{tier}.{jpg|png} next to each image
  for every size tier (small 480, medium 768, large 1280, xl 1920 by default).
- Rewrites rendered .html/.css in the output tree:
    * <img src="..."> becomes <picture> with webp + raster srcsets
    * background-image: url("...") becomes an image-set() with 1x/2x/3x
    * a small style block for background images is added before </head>
- Optional settings from respimg.json in the site root (or --config).

Every run regenerates every derivative.

Requires: Python 3.8+, Pillow
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

try:
    from PIL import Image  # noqa: F401
except ImportError:
    print("Pillow is required. Install with: pip install pillow", file=sys.stderr)
    sys.exit(1)

from respimg import register
from respimg.discovery import is_transient
from respimg.errors import DiscoveryError

CONFIG_FILENAME = "respimg.json"
RENDERED_EXTS = {".html": "after_render:html", ".css": "after_render:css"}

logger = logging.getLogger(__name__)


# ---------- Minimal host ----------

class FilterRegistry:
    """Event name -> ordered filter callables, the extension point hooks attach to."""

    def __init__(self) -> None:
        self.filters: Dict[str, List[Callable]] = {}

    def register(self, event: str, fn: Callable) -> None:
        self.filters.setdefault(event, []).append(fn)

    def run(self, event: str) -> None:
        for fn in self.filters.get(event, []):
            fn()

    def apply(self, event: str, text: str, data: Any = None) -> str:
        for fn in self.filters.get(event, []):
            text = fn(text, data)
        return text


class SiteHost:
    def __init__(self, source_dir: Path, theme_dir: Path, config: Dict[str, Any]) -> None:
        self.source_dir = source_dir
        self.theme_dir = theme_dir
        self.config = {"responsive_images": config}
        self.extend = SimpleNamespace(filter=FilterRegistry())


# ---------- Helpers ----------

def load_config(path: Optional[Path]) -> Dict[str, Any]:
    if path is None or not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"cannot read {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path} must hold a JSON object")
    return data


def write_text_atomic(target: Path, text: str) -> None:
    tmp = target.with_suffix(target.suffix + ".tmp")
    with open(tmp, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    os.replace(tmp, target)


def rewrite_outputs(host: SiteHost, output_dir: Path) -> int:
    """Run the post-render filters over every rendered file. Returns files edited."""
    targets = sorted(
        p for p in output_dir.rglob("*")
        if p.is_file() and p.suffix.lower() in RENDERED_EXTS and not is_transient(p)
    )
    edited = 0
    for file_path in targets:
        try:
            try:
                text = file_path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                text = file_path.read_text(encoding="latin-1")
        except FileNotFoundError:
            print(f"SKIP {file_path.relative_to(output_dir)}  vanished during scan")
            continue

        event = RENDERED_EXTS[file_path.suffix.lower()]
        new_text = host.extend.filter.apply(event, text, {"path": str(file_path)})
        if new_text != text:
            write_text_atomic(file_path, new_text)
            edited += 1
            print(f"EDIT {file_path.relative_to(output_dir)}")
        else:
            logger.debug("SKIP %s  no image references", file_path.relative_to(output_dir))
    return edited


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Generate responsive image derivatives and rewrite rendered pages.")
    parser.add_argument("--root", default=".", help="Site root containing source/ and themes/")
    parser.add_argument("--source-dir", default=None, help="Source tree (default: <root>/source)")
    parser.add_argument("--theme-dir", default=None, help="Theme tree (default: <root>/themes)")
    parser.add_argument("--output-dir", default=None, help="Rendered .html/.css to rewrite (default: the source tree)")
    parser.add_argument("--config", default=None, help=f"JSON settings (default: <root>/{CONFIG_FILENAME} if present)")
    parser.add_argument("--workers", type=int, default=None, help="Worker threads for encoding")
    parser.add_argument("--dry-run", action="store_true", help="Show planned derivatives only")
    parser.add_argument("--no-rewrite", action="store_true", help="Generate derivatives but leave rendered files alone")
    parser.add_argument("--verbose", action="store_true", help="Log every file written")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")

    root = Path(args.root).resolve()
    source_dir = Path(args.source_dir).resolve() if args.source_dir else root / "source"
    theme_dir = Path(args.theme_dir).resolve() if args.theme_dir else root / "themes"
    output_dir = Path(args.output_dir).resolve() if args.output_dir else source_dir

    if not source_dir.exists():
        print(f"source directory not found: {source_dir}", file=sys.stderr)
        return 1

    try:
        overrides = load_config(Path(args.config) if args.config else root / CONFIG_FILENAME)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1
    if args.workers is not None:
        overrides["workers"] = args.workers

    host = SiteHost(source_dir, theme_dir, overrides)
    pipeline = register(host)

    print(f"Sources: {source_dir}, {theme_dir}")
    if args.dry_run:
        try:
            pipeline.dry_run()
        except (DiscoveryError, ValueError) as e:
            print(str(e), file=sys.stderr)
            return 1
        return 0

    try:
        host.extend.filter.run("before_generate")
    except (DiscoveryError, ValueError) as e:
        print(str(e), file=sys.stderr)
        return 1

    if args.no_rewrite:
        print("Rendered file updates skipped (--no-rewrite).")
        return 0

    if output_dir.exists():
        edited = rewrite_outputs(host, output_dir)
        print(f"Updated {edited} file(s) in {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
