"""Failure taxonomy for the derivative pipeline."""


class RespimgError(Exception):
    """Base class for pipeline errors."""


class UnsupportedFormatError(RespimgError):
    """Source format has no derivative plan (anything but JPEG/PNG)."""

    def __init__(self, path, fmt):
        super().__init__(f"unsupported format: {fmt or 'unknown'}")
        self.path = path
        self.format = fmt


class CodecError(RespimgError):
    """Probe, resize or encode failed for one source image."""


class FilesystemError(RespimgError):
    """Write, rename or delete of a derivative failed."""


class DiscoveryError(RespimgError):
    """Walking a source tree failed. Fatal for the whole build."""
