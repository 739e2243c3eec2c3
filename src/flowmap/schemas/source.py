"""Geometry source schema and feature categories.

A source entry names one geometry payload (shapefile pair or GeoJSON
document) and, optionally, the category every feature in it belongs to.
"""

from enum import Enum
from typing import Optional

from pydantic import Field, field_validator

from flowmap.schemas.base import FlowmapBaseModel

__all__ = ['FeatureType', 'GeometrySourceConfig']


class FeatureType(str, Enum):
    """Category of a flow feature."""
    RIVER = "river"
    CANAL = "canal"
    WEIR = "weir"


class GeometrySourceConfig(FlowmapBaseModel):
    """One geometry source to reconcile against the flow table.

    Attributes
    ----------
    path : str
        Locator of the source: local path, ``file://`` or ``http(s)://`` URL.
        ``.shp`` sources are fetched together with their sibling ``.dbf``.
    type_override : FeatureType, optional
        Category forced on every feature of this source. When None the
        classifier decides from ``label`` and the feature attributes.
    label : str, optional
        Text the classifier inspects. Defaults to ``path``.
    """
    path: str = Field(min_length=1)
    type_override: Optional[FeatureType] = None
    label: Optional[str] = None

    @field_validator("type_override", mode="before")
    @classmethod
    def normalize_type_override(cls, v):
        """Accept 'River', ' WEIR ' etc."""
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @property
    def source_label(self) -> str:
        return self.label or self.path
