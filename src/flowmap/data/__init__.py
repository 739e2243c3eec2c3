"""Data stages: flow table, geometry sources, classification, normalization.

- table: Flow table parser (identifier -> yearly flows)
- sources: Fetching and decoding of shapefile and GeoJSON sources
- classifier: river / canal / weir classification
- geometry: LineString / Point normalization
- models: FlowFeature and attribute probing
"""

from flowmap.data.models import (
    FeatureType,
    FlowFeature,
    FlowProperties,
    GeometrySourceConfig,
    probe_attribute,
)
from flowmap.data.table import parse_flow_table
from flowmap.data.classifier import classify_feature
from flowmap.data.geometry import GeometryNormalizationError, normalize_geometry
from flowmap.data.sources import (
    FetchError,
    SourceDecodeError,
    SourceFetcher,
    fetch_source_features,
)

__all__ = [
    "FeatureType",
    "FlowFeature",
    "FlowProperties",
    "GeometrySourceConfig",
    "probe_attribute",
    "parse_flow_table",
    "classify_feature",
    "GeometryNormalizationError",
    "normalize_geometry",
    "FetchError",
    "SourceDecodeError",
    "SourceFetcher",
    "fetch_source_features",
]
