# tests/test_discovery.py
"""Tests for source image discovery."""

import errno

import pytest

from respimg.config import DEFAULT_SIZES
from respimg.discovery import collect_images
from respimg.errors import DiscoveryError


class TestCollectImages:
    """Test collect_images."""

    def test_recursive_and_ordered(self, site_dir):
        """Test nested images are found in a stable order across roots."""
        for rel in ("source/b.jpg", "source/a/x.PNG", "source/a.jpeg", "themes/t/logo.png"):
            p = site_dir / rel
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(b"")
        found = collect_images([site_dir / "source", site_dir / "themes"], DEFAULT_SIZES)
        assert [p.relative_to(site_dir).as_posix() for p in found] == [
            "source/a.jpeg", "source/b.jpg", "source/a/x.PNG", "themes/t/logo.png",
        ]

    def test_filters(self, site_dir):
        """Test other extensions, editor files and derivatives are skipped."""
        for name in ("a.jpg", "a-small.jpg", "a-xl.webp", "notes.txt", "anim.gif", "b.jpg~", ".#c.png", "d.png.tmp"):
            (site_dir / name).write_bytes(b"")
        found = collect_images([site_dir], DEFAULT_SIZES)
        assert [p.name for p in found] == ["a.jpg"]

    def test_missing_root(self, site_dir):
        """Test absent directories contribute nothing."""
        assert collect_images([site_dir / "nope"], DEFAULT_SIZES) == []

    def test_walk_error_is_fatal(self, site_dir, monkeypatch):
        """Test errors while walking become DiscoveryError."""
        def broken_walk(top, onerror=None, **kwargs):
            onerror(PermissionError(errno.EACCES, "Permission denied", str(top)))
            yield from ()

        monkeypatch.setattr("respimg.discovery.os.walk", broken_walk)
        with pytest.raises(DiscoveryError):
            collect_images([site_dir], DEFAULT_SIZES)
