"""
Rewrite rendered text to reference generated derivatives.

Matching is textual and case-sensitive on the source reference: every
<img> whose src equals a record's reference becomes a <picture>, and every
literal ``background-image: url("<ref>")`` becomes a multi-candidate
declaration. Rewritten output never contains the matched form again, so a
second pass is a no-op.
"""

import logging
import os
import re
from pathlib import Path
from typing import List, Optional

from .config import PipelineConfig
from .models import AssetRecord, Derivative
from .planner import target_formats
from .registry import AssetRegistry

logger = logging.getLogger(__name__)

FALLBACK_TIER = "medium"
# Background candidates: density descriptor -> size tier
DENSITY_TIERS = (("1x", "small"), ("2x", "medium"), ("3x", "large"))

WIDTH_RE = re.compile(r"\swidth\s*=", re.IGNORECASE)
HEIGHT_RE = re.compile(r"\sheight\s*=", re.IGNORECASE)
LOADING_RE = re.compile(r"\sloading\s*=", re.IGNORECASE)
SRCSET_ATTR_RE = re.compile(r"\s(?:srcset|sizes)\s*=\s*(['\"]).*?\1", re.IGNORECASE | re.DOTALL)
HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)

STYLE_MARKER = "data-respimg"
STYLE_TEMPLATE = """<style {marker}>
{selector} {{
  background-size: cover;
  background-position: center;
  background-repeat: no-repeat;
}}
</style>
"""


def img_pattern(ref: str) -> re.Pattern:
    """<img ... src="ref" ...> with the reference matched literally."""
    return re.compile(r"<(?i:img)\b[^>]*?\s(?i:src)\s*=\s*(['\"])" + re.escape(ref) + r"\1[^>]*>")


def background_declaration(ref: str) -> str:
    return f'background-image: url("{ref}")'


def insert_or_replace_attr(tag: str, attr: str, value: str) -> str:
    patt = re.compile(rf"\s{attr}\s*=\s*(['\"]).*?\1", re.IGNORECASE | re.DOTALL)
    if patt.search(tag):
        return patt.sub(f' {attr}="{value}"', tag, count=1)
    # insert before '>'
    end = tag.rfind(">")
    if end == -1:
        return tag
    i = end - 1
    while i >= 0 and tag[i].isspace():
        i -= 1
    if i >= 0 and tag[i] == "/":
        return tag[:i].rstrip() + f' {attr}="{value}" ' + tag[i:]
    return tag[:end].rstrip() + f' {attr}="{value}"' + tag[end:]


def inject_styles(text: str, selector: str) -> str:
    """Insert the background style block before </head>; no head, no change."""
    if STYLE_MARKER in text:
        return text
    m = HEAD_CLOSE_RE.search(text)
    if not m:
        return text
    block = STYLE_TEMPLATE.format(marker=STYLE_MARKER, selector=selector)
    return text[:m.start()] + block + text[m.start():]


class MarkupRewriter:
    def __init__(self, registry: AssetRegistry, config: PipelineConfig, base_dir: Optional[Path] = None) -> None:
        self.registry = registry
        self.config = config
        self.base_dir = base_dir

    # ---------- URLs ----------

    def _relative_dir(self, record: AssetRecord) -> str:
        # Directories differ per record, so this is computed each time
        if self.base_dir is None:
            return record.directory.as_posix()
        return Path(os.path.relpath(record.directory, self.base_dir)).as_posix()

    def _root_relative(self, record: AssetRecord, ref: str) -> bool:
        # "/images/a.jpg" style references keep their leading slash
        return ref != record.key and ref.startswith("/")

    def url(self, record: AssetRecord, d: Derivative, absolute: bool = False) -> str:
        rel_dir = self._relative_dir(record)
        url = d.path.name if rel_dir == "." else f"{rel_dir}/{d.path.name}"
        if absolute and not url.startswith("/"):
            url = "/" + url
        return url

    def srcset(self, record: AssetRecord, fmt: str, absolute: bool = False) -> str:
        return ", ".join(f"{self.url(record, d, absolute)} {d.width}w" for d in record.by_format(fmt))

    # ---------- Foreground ----------

    def picture(self, record: AssetRecord, tag: str, src_span, absolute: bool = False) -> str:
        """
        <picture> with a next-gen <source>, a raster <source> and the
        original <img> (other attributes kept) pointing at the medium tier.
        """
        opts = self.config.picture
        sources: List[str] = []
        for fmt in target_formats(record.format):
            d = record.by_format(fmt)[0]
            attrs = f'type="{d.mime_type}" srcset="{self.srcset(record, fmt, absolute)}"'
            if opts.sizes:
                attrs += f' sizes="{opts.sizes}"'
            sources.append(f"<source {attrs}>")

        fallback = record.get(FALLBACK_TIER, record.format)
        start, end = src_span
        img = tag[:start] + self.url(record, fallback, absolute) + tag[end:]
        img = SRCSET_ATTR_RE.sub("", img)
        if fallback.height and not WIDTH_RE.search(img) and not HEIGHT_RE.search(img):
            img = insert_or_replace_attr(img, "width", str(fallback.width))
            img = insert_or_replace_attr(img, "height", str(fallback.height))
        if opts.loading and not LOADING_RE.search(img):
            img = insert_or_replace_attr(img, "loading", opts.loading)
        return "<picture>" + "".join(sources) + img + "</picture>"

    def rewrite_images(self, text: str, record: AssetRecord) -> str:
        for ref in record.references(self.base_dir):
            absolute = self._root_relative(record, ref)

            def repl(m: re.Match) -> str:
                # Offsets of the reference inside the matched tag
                span = (m.end(1) - m.start(0), m.end(1) - m.start(0) + len(ref))
                return self.picture(record, m.group(0), span, absolute)

            text, count = img_pattern(ref).subn(repl, text)
            if count:
                logger.debug("picture x%d for %s", count, ref)
        return text

    # ---------- Background ----------

    def background_block(self, record: AssetRecord, absolute: bool = False) -> str:
        """
        Plain largest-raster declaration for engines without image-set(),
        then image-set() with 1x/2x/3x candidates, next-gen first.
        """
        fallback = record.get(self.config.largest.name, record.format)
        candidates = []
        for fmt in target_formats(record.format):
            for density, tier in DENSITY_TIERS:
                d = record.get(tier, fmt)
                candidates.append(f'url("{self.url(record, d, absolute)}") type("{d.mime_type}") {density}')
        # Fallback first: a plain url() after image-set() would win in every engine
        return (
            f'background-image: url("{self.url(record, fallback, absolute)}");\n'
            f'  background-image: image-set({", ".join(candidates)})'
        )

    def rewrite_backgrounds(self, text: str, record: AssetRecord) -> str:
        for ref in record.references(self.base_dir):
            decl = background_declaration(ref)
            if decl in text:
                logger.debug("image-set x%d for %s", text.count(decl), ref)
                text = text.replace(decl, self.background_block(record, self._root_relative(record, ref)))
        return text

    # ---------- Entry ----------

    def rewrite(self, text: str) -> str:
        for record in self.registry.foreground.values():
            text = self.rewrite_images(text, record)
        bg = self.config.background_images
        if bg.enabled:
            for record in self.registry.background.values():
                text = self.rewrite_backgrounds(text, record)
            if bg.inject_css:
                text = inject_styles(text, bg.style_selector)
        return text
