"""Data model shared by the flow table, geometry sources and the reconciler.

`FlowFeature` is the unit the rest of the application consumes: one map
segment (polyline) or structure (point) with its display name, category and
year -> flow series. Instances are frozen; the reconciler hands out a tuple
of them and nothing downstream mutates it.
"""

import math
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from flowmap.schemas.source import FeatureType, GeometrySourceConfig

__all__ = [
    'FeatureType',
    'GeometrySourceConfig',
    'FlowProperties',
    'FlowFeature',
    'probe_attribute',
]


class FlowProperties(BaseModel):
    """Display attributes and yearly flows of a feature."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    name: str
    type: FeatureType
    flows: dict[str, float] = Field(default_factory=dict)


class FlowFeature(BaseModel):
    """Merged flow record: geometry + category + name + yearly flows.

    ``geometry`` is always a GeoJSON ``LineString`` or ``Point`` mapping;
    multi-part lines are collapsed before a FlowFeature is built.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str
    geometry: dict[str, Any]
    properties: FlowProperties

    def to_geojson(self) -> dict:
        """Return this feature as a plain GeoJSON ``Feature`` dict."""
        return {
            "type": "Feature",
            "id": self.id,
            "geometry": self.geometry,
            "properties": {
                "name": self.properties.name,
                "type": self.properties.type.value,
                "flows": dict(self.properties.flows),
            },
        }


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


def _as_text(value: Any) -> str:
    # DBF numeric fields come back as floats; 12.0 must match "12" in the table
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def probe_attribute(attributes: Optional[Mapping[str, Any]],
                    keys: Iterable[str]) -> Optional[str]:
    """Return the first non-blank value among ``keys`` in ``attributes``.

    Keys are tried in order; None, NaN and empty strings count as missing.
    Returns None when no key matches.

    Examples
    --------
    >>> probe_attribute({"MAPID": "", "MapID": "C1"}, ["MAPID", "MapID"])
    'C1'
    >>> probe_attribute({"SiteID": 12.0}, ["MapID", "SiteID"])
    '12'
    """
    if not attributes:
        return None
    for key in keys:
        value = attributes.get(key)
        if not _is_blank(value):
            return _as_text(value)
    return None
