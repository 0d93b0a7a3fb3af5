"""
Runtime metadata: the node's self-described catalog of modules and calls.
"""

from .models import CallMetadata, MetadataCatalog, ModuleMetadata, RuntimeVersion, callable_modules
from .parser import MetadataParser, ScaleMetadataParser, parse_metadata

__all__ = [
    "CallMetadata",
    "MetadataCatalog",
    "MetadataParser",
    "ModuleMetadata",
    "RuntimeVersion",
    "ScaleMetadataParser",
    "callable_modules",
    "parse_metadata",
]
