"""Pydantic configuration schemas for the flowmap pipeline.

This module provides strictly typed configuration models for the flow
reconciliation pipeline. All configuration validation, coercion, and
normalization happens at schema validation time via Pydantic.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
GeometrySourceConfig : class
    One geometry source entry
FeatureType : enum
    river / canal / weir
"""

from flowmap.schemas.source import FeatureType, GeometrySourceConfig
from flowmap.schemas.resolve import resolve_config
from flowmap.schemas.internal import InternalConfig
from flowmap.schemas.param import ParamConfig
from flowmap.schemas.user import UserConfig
from flowmap.schemas.cli import CLIConfig

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
    'GeometrySourceConfig',
    'FeatureType',
]
