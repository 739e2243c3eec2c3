"""Tests for normalize_geometry."""

import pytest

from flowmap.data.geometry import GeometryNormalizationError, normalize_geometry

pytestmark = pytest.mark.unit


def test_linestring_passthrough():
    geometry = {"type": "LineString", "coordinates": [[0, 0], [1, 1], [2, 1]]}
    assert normalize_geometry(geometry) == geometry


def test_point_passthrough():
    assert normalize_geometry({"type": "Point", "coordinates": [3.5, -1]}) == {
        "type": "Point", "coordinates": [3.5, -1]
    }


def test_multilinestring_keeps_first_part():
    geometry = {
        "type": "MultiLineString",
        "coordinates": [[[4, 4], [5, 5]], [[6, 6], [7, 7]]],
    }
    assert normalize_geometry(geometry) == {
        "type": "LineString", "coordinates": [[4, 4], [5, 5]]
    }


def test_tuples_become_lists():
    geometry = {"type": "LineString", "coordinates": ((0.0, 0.0), (1.0, 2.0))}
    result = normalize_geometry(geometry)
    assert result["coordinates"] == [[0.0, 0.0], [1.0, 2.0]]
    assert isinstance(result["coordinates"][0], list)


def test_input_not_mutated():
    geometry = {"type": "MultiLineString", "coordinates": [[[0, 0], [1, 1]], [[2, 2], [3, 3]]]}
    normalize_geometry(geometry)
    assert geometry["type"] == "MultiLineString"
    assert len(geometry["coordinates"]) == 2


def test_empty_multilinestring_rejected():
    with pytest.raises(GeometryNormalizationError) as info:
        normalize_geometry({"type": "MultiLineString", "coordinates": []})
    assert info.value.kind == "MultiLineString"


@pytest.mark.parametrize("geometry,kind", [
    ({"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}, "Polygon"),
    ({"type": "MultiPoint", "coordinates": [[0, 0], [1, 1]]}, "MultiPoint"),
    ({"type": "GeometryCollection", "geometries": []}, "GeometryCollection"),
    (None, "None"),
    ({}, "None"),
])
def test_unsupported_kinds_rejected(geometry, kind):
    with pytest.raises(GeometryNormalizationError) as info:
        normalize_geometry(geometry)
    assert info.value.kind == kind


def test_degenerate_linestring_rejected():
    with pytest.raises(GeometryNormalizationError):
        normalize_geometry({"type": "LineString", "coordinates": [[0, 0]]})


def test_point_without_coordinates_rejected():
    with pytest.raises(GeometryNormalizationError):
        normalize_geometry({"type": "Point", "coordinates": []})


def test_error_is_value_error():
    assert issubclass(GeometryNormalizationError, ValueError)
