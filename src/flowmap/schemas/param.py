"""ParamConfig: Expert defaults for the flowmap pipeline.

This module defines the complete default configuration. ALL pipeline
parameters must have defaults here. No runtime code should define fallback
values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from flowmap.schemas.base import FlowmapBaseModel
from flowmap.schemas.source import GeometrySourceConfig


# =============================================================================
# Nested Configuration Models
# =============================================================================

class TableConfig(FlowmapBaseModel):
    """Flow table parsing configuration."""
    id_column: str = Field("MapID", min_length=1, description="Identifier column header")


class AttributesConfig(FlowmapBaseModel):
    """Attribute bag probing.

    Keys are tried in order; the first non-blank value wins.
    """
    id_keys: list[str] = Field(
        default_factory=lambda: ["MAPID", "MapID", "mapid", "SiteID", "SITEID"]
    )
    name_keys: list[str] = Field(
        default_factory=lambda: ["NAME", "Name", "SiteName", "GNIS_Name"]
    )
    type_keys: list[str] = Field(default_factory=lambda: ["TYPE"])
    default_name: str = "Unknown"

    @field_validator("id_keys", "name_keys", mode="after")
    @classmethod
    def require_keys(cls, v):
        """An empty alias list would silently drop every feature."""
        if not v:
            raise ValueError("alias list must contain at least one key")
        return v


class FetchConfig(FlowmapBaseModel):
    """Source retrieval configuration."""
    timeout_sec: float = Field(30.0, gt=0, description="HTTP request timeout in seconds")
    max_workers: int = Field(4, ge=1, le=32, description="Concurrent geometry source fetches")


class LoggingConfig(FlowmapBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Optional[str] = None

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(FlowmapBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all pipeline parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    table_path: Optional[str] = None
    sources: list[GeometrySourceConfig] = Field(default_factory=list)
    table: TableConfig = Field(default_factory=TableConfig)
    attributes: AttributesConfig = Field(default_factory=AttributesConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
