"""Normalize raw GeoJSON-like geometries to a LineString or a Point.

The map renderer draws one polyline or one marker per feature, so every
geometry is reduced to one of those two shapes:

- ``Point`` and ``LineString`` pass through unchanged
- ``MultiLineString`` keeps its FIRST part only

The multi-part collapse is lossy on purpose: the remaining parts of a
multi-part line are dropped, not merged. Everything else (Polygon,
MultiPoint, GeometryCollection, missing geometry) is rejected with
GeometryNormalizationError and the caller skips the feature.
"""

from typing import Any, Mapping, Optional

__all__ = ['normalize_geometry', 'GeometryNormalizationError', 'SUPPORTED_GEOMETRY_TYPES']

SUPPORTED_GEOMETRY_TYPES = ("Point", "LineString", "MultiLineString")


class GeometryNormalizationError(ValueError):
    """Raised when a geometry cannot be reduced to a LineString or Point.

    Attributes
    ----------
    kind : str
        Geometry type that was rejected ("Polygon", "None", ...).
    """

    def __init__(self, kind: str, message: Optional[str] = None):
        self.kind = kind
        super().__init__(message or f"unsupported geometry type: {kind}")


def _as_lists(coords: Any) -> Any:
    # shapely/geopandas mappings use tuples; the output uses plain lists
    if isinstance(coords, (list, tuple)):
        return [_as_lists(c) for c in coords]
    return coords


def normalize_geometry(geometry: Optional[Mapping[str, Any]]) -> dict:
    """Reduce a GeoJSON-like geometry to a LineString or Point mapping.

    Parameters
    ----------
    geometry : mapping or None
        ``{"type": ..., "coordinates": ...}`` as produced by a shapefile or
        GeoJSON decoder.

    Returns
    -------
    dict
        ``{"type": "LineString" | "Point", "coordinates": [...]}`` with
        coordinates as nested lists, positions unchanged.

    Raises
    ------
    GeometryNormalizationError
        Unsupported geometry type, missing geometry, a MultiLineString
        without parts, or a line with fewer than 2 positions.

    Examples
    --------
    >>> normalize_geometry({"type": "MultiLineString",
    ...                     "coordinates": [[[4, 4], [5, 5]], [[6, 6], [7, 7]]]})
    {'type': 'LineString', 'coordinates': [[4, 4], [5, 5]]}
    """
    if not geometry:
        raise GeometryNormalizationError("None", "feature has no geometry")

    kind = geometry.get("type")
    coordinates = geometry.get("coordinates")

    if kind == "Point":
        if not coordinates:
            raise GeometryNormalizationError(kind, "Point has no coordinates")
        return {"type": kind, "coordinates": _as_lists(coordinates)}

    if kind == "MultiLineString":
        if not coordinates:
            raise GeometryNormalizationError(kind, "MultiLineString has no parts")
        kind, coordinates = "LineString", coordinates[0]

    if kind == "LineString":
        if not coordinates or len(coordinates) < 2:
            raise GeometryNormalizationError(kind, "LineString has fewer than 2 positions")
        return {"type": kind, "coordinates": _as_lists(coordinates)}

    raise GeometryNormalizationError(str(kind))
