"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that processing code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from typing import Literal, Optional
from pydantic import Field, ConfigDict
from flowmap.schemas.base import FlowmapBaseModel
from flowmap.schemas.source import GeometrySourceConfig


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalTableConfig(FlowmapBaseModel):
    """Runtime flow table configuration."""
    id_column: str


class InternalAttributesConfig(FlowmapBaseModel):
    """Runtime attribute probing configuration."""
    id_keys: list[str] = Field(min_length=1)
    name_keys: list[str] = Field(min_length=1)
    type_keys: list[str]
    default_name: str


class InternalFetchConfig(FlowmapBaseModel):
    """Runtime fetch configuration."""
    timeout_sec: float = Field(gt=0)
    max_workers: int = Field(ge=1, le=32)


class InternalLoggingConfig(FlowmapBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    log_file: Optional[str]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(FlowmapBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that processing code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.id_column = config.table.id_column  # NOT .get()
            self.id_keys = config.attributes.id_keys

    Notes
    -----
    ``table_path`` may be None while configs are merged; FlowDataStore
    refuses to start without it.
    """

    table_path: Optional[str]
    sources: list[GeometrySourceConfig]
    table: InternalTableConfig
    attributes: InternalAttributesConfig
    fetch: InternalFetchConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )
