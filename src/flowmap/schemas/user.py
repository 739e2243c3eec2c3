"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., TABLE_PATH -> table_path, SOURCES -> sources).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient: upper- and
lowercase keys, sources as plain paths or (path, type) pairs, and so on.
"""

from typing import Literal, Optional, Any
from pydantic import Field, field_validator
from flowmap.schemas.base import FlowmapBaseModel
from flowmap.schemas.source import GeometrySourceConfig


class UserTableConfig(FlowmapBaseModel):
    """User-facing table config."""
    id_column: Optional[str] = None


class UserAttributesConfig(FlowmapBaseModel):
    """User-facing attribute probing config."""
    id_keys: Optional[list[str]] = None
    name_keys: Optional[list[str]] = None
    type_keys: Optional[list[str]] = None
    default_name: Optional[str] = None


class UserFetchConfig(FlowmapBaseModel):
    """User-facing fetch config."""
    timeout_sec: Optional[float] = None
    max_workers: Optional[int] = None


class UserConfig(FlowmapBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            table_path="data/flows.csv",
            sources=[
                "data/canals/canals.shp",
                ("data/rivers/rivers.shp", "river"),
                {"path": "data/points/points.shp", "type_override": "weir"},
            ],
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Inputs
    table_path: Optional[str] = Field(None, alias="TABLE_PATH")
    sources: Optional[list[GeometrySourceConfig]] = Field(None, alias="SOURCES")

    # Table / attribute settings (flat aliases)
    id_column: Optional[str] = Field(None, alias="ID_COLUMN")
    id_keys: Optional[list[str]] = Field(None, alias="ID_KEYS")
    name_keys: Optional[list[str]] = Field(None, alias="NAME_KEYS")
    type_keys: Optional[list[str]] = Field(None, alias="TYPE_KEYS")
    default_name: Optional[str] = Field(None, alias="DEFAULT_NAME")

    # Fetch settings (flat aliases)
    timeout_sec: Optional[float] = Field(None, alias="TIMEOUT_SEC")
    max_workers: Optional[int] = Field(None, alias="MAX_WORKERS")

    # Logging
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(
        None, alias="LOG_LEVEL"
    )
    log_file: Optional[str] = Field(None, alias="LOG_FILE")

    # Nested overrides (advanced users)
    table: Optional[UserTableConfig] = None
    attributes: Optional[UserAttributesConfig] = None
    fetch: Optional[UserFetchConfig] = None

    model_config = FlowmapBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("sources", mode="before")
    @classmethod
    def coerce_sources(cls, v):
        """Accept plain paths and (path, type_override) pairs."""
        if v is None:
            return v
        coerced = []
        for item in v:
            if isinstance(item, str):
                coerced.append({"path": item})
            elif isinstance(item, (tuple, list)):
                path, type_override = (list(item) + [None])[:2]
                coerced.append({"path": path, "type_override": type_override})
            else:
                coerced.append(item)
        return coerced

    @field_validator("log_level", mode="before")
    @classmethod
    def upper_log_level(cls, v):
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides: dict[str, Any] = {}

        if self.table_path is not None:
            overrides["table_path"] = self.table_path

        if self.sources is not None:
            overrides["sources"] = [s.model_dump() for s in self.sources]

        # Table section
        table = {}
        if self.id_column is not None:
            table["id_column"] = self.id_column
        if self.table is not None:
            table.update(self.table.model_dump(exclude_none=True))
        if table:
            overrides["table"] = table

        # Attributes section
        attributes = {}
        for key in ("id_keys", "name_keys", "type_keys", "default_name"):
            value = getattr(self, key)
            if value is not None:
                attributes[key] = value
        if self.attributes is not None:
            attributes.update(self.attributes.model_dump(exclude_none=True))
        if attributes:
            overrides["attributes"] = attributes

        # Fetch section
        fetch = {}
        if self.timeout_sec is not None:
            fetch["timeout_sec"] = self.timeout_sec
        if self.max_workers is not None:
            fetch["max_workers"] = self.max_workers
        if self.fetch is not None:
            fetch.update(self.fetch.model_dump(exclude_none=True))
        if fetch:
            overrides["fetch"] = fetch

        logging_cfg = {}
        if self.log_level is not None:
            logging_cfg["level"] = self.log_level
        if self.log_file is not None:
            logging_cfg["log_file"] = self.log_file
        if logging_cfg:
            overrides["logging"] = logging_cfg

        return overrides
