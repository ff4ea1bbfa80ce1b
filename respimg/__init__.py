"""
Build-time responsive image pipeline.

Modules:
- config: size tiers, encode options and override merging
- planner: which derivatives a source needs
- generator: resize/encode derivatives with a bounded worker pool
- registry: build-scoped store of generated derivatives
- rewriter: substitute image references in rendered text
- pipeline: pre-render / post-render host hooks
"""

from .config import PipelineConfig, SizeProfile, resolve_config
from .errors import (
    CodecError,
    DiscoveryError,
    FilesystemError,
    RespimgError,
    UnsupportedFormatError,
)
from .models import AssetRecord, Derivative, SourceImage
from .pipeline import Pipeline, register
from .registry import AssetRegistry

__all__ = [
    "AssetRecord",
    "AssetRegistry",
    "CodecError",
    "Derivative",
    "DiscoveryError",
    "FilesystemError",
    "Pipeline",
    "PipelineConfig",
    "RespimgError",
    "SizeProfile",
    "SourceImage",
    "UnsupportedFormatError",
    "register",
    "resolve_config",
]

__version__ = "0.1.0"
