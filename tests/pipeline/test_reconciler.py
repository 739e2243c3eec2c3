"""Tests for FlowReconciler: joining geometry sources against the flow table."""

import logging

import pytest

from flowmap.contracts import ContractViolation
from flowmap.data.models import FeatureType, FlowFeature
from flowmap.data.sources import FetchError, SourceDecodeError
from flowmap.pipeline.reconciler import FlowReconciler
from tests.helpers.fake_sources import (
    FakeFetcher,
    dict_source_loader,
    line_feature,
    multiline_feature,
    point_feature,
    polygon_feature,
)

pytestmark = pytest.mark.unit

TABLE = "MapID,1979,1980\nC1,10,12\nR1,100,102"

CANALS = "/data/Canals_KernRiver_Merged_rev.shp"
RIVERS = "/data/NHDStreamRiverKernRiver_rev.shp"
POINTS = "/data/Points_Metro_Bak_Canals_Rev.shp"


def make_reconciler(config, sources, table=TABLE):
    fetcher = FakeFetcher({"table.csv": table})
    return FlowReconciler(config, fetcher=fetcher, source_loader=dict_source_loader(sources))


# =============================================================================
# Example scenarios
# =============================================================================

def test_canal_feature_joined_with_flows(internal_config):
    reconciler = make_reconciler(internal_config, {
        CANALS: [line_feature({"MapID": "C1", "NAME": "Canal Alpha"})],
    })

    features = reconciler.reconcile("table.csv", [{"path": CANALS}])

    assert len(features) == 1
    feature = features[0]
    assert feature.id == "C1_canal"
    assert feature.properties.type == FeatureType.CANAL
    assert feature.properties.name == "Canal Alpha"
    assert feature.properties.flows == {"1979": 10.0, "1980": 12.0}


def test_multiline_first_part_and_empty_flows(internal_config, caplog):
    reconciler = make_reconciler(internal_config, {
        RIVERS: [multiline_feature({"MapID": "R2"}, [[(4, 4), (5, 5)], [(6, 6), (7, 7)]])],
    })

    with caplog.at_level(logging.WARNING, logger="flowmap.pipeline.reconciler"):
        features = reconciler.reconcile("table.csv", [{"path": RIVERS}])

    (feature,) = features
    assert feature.geometry == {"type": "LineString", "coordinates": [[4, 4], [5, 5]]}
    assert feature.properties.flows == {}
    assert "No flow data found for MapID R2" in caplog.text


def test_empty_table_still_yields_features(internal_config):
    reconciler = make_reconciler(
        internal_config,
        {CANALS: [line_feature({"MapID": "C1"})]},
        table="",
    )

    features = reconciler.reconcile("table.csv", [{"path": CANALS}])

    assert [f.id for f in features] == ["C1_canal"]
    assert features[0].properties.flows == {}


def test_failing_source_is_isolated(internal_config, caplog):
    reconciler = make_reconciler(internal_config, {
        CANALS: FetchError(CANALS, "Connection reset by peer"),
        RIVERS: [line_feature({"MapID": "R1", "GNIS_Name": "Kern River"})],
    })

    with caplog.at_level(logging.ERROR, logger="flowmap.pipeline.reconciler"):
        features = reconciler.reconcile("table.csv", [{"path": CANALS}, {"path": RIVERS}])

    assert [f.id for f in features] == ["R1_river"]
    assert features[0].properties.name == "Kern River"
    assert CANALS in caplog.text
    assert "Connection reset by peer" in caplog.text


def test_polygon_feature_skipped(internal_config, caplog):
    reconciler = make_reconciler(internal_config, {
        CANALS: [polygon_feature({"MapID": "Poly1"}), line_feature({"MapID": "C1"})],
    })

    with caplog.at_level(logging.WARNING, logger="flowmap.pipeline.reconciler"):
        features = reconciler.reconcile("table.csv", [{"path": CANALS}])

    assert [f.id for f in features] == ["C1_canal"]
    assert "Poly1" in caplog.text
    assert "Polygon" in caplog.text


def test_table_with_decoder_errors_still_reconciles(internal_config, caplog):
    table = (
        "MapID,1979,1980\n"
        "C1,10,12,\n"        # trailing delimiter
        "R1,100\n"           # short row
        "W1,1,2,3,4\n"       # too many fields
        "\"X9,5\n"           # unterminated quote
    )
    reconciler = make_reconciler(internal_config, {
        CANALS: [line_feature({"MapID": "C1"})],
        RIVERS: [line_feature({"MapID": "R1"})],
        POINTS: [point_feature({"MapID": "W1"}), point_feature({"MapID": "W9"})],
    }, table=table)

    with caplog.at_level(logging.WARNING):
        features = reconciler.reconcile(
            "table.csv", [{"path": CANALS}, {"path": RIVERS}, {"path": POINTS}]
        )

    flows = {f.id: f.properties.flows for f in features}
    assert flows == {
        "C1_canal": {"1979": 10.0, "1980": 12.0},
        "R1_river": {"1979": 100.0, "1980": 0.0},
        "W1_weir": {"1979": 1.0, "1980": 2.0},
        "W9_weir": {},
    }
    assert "Flow table row 1 has 4 fields" in caplog.text
    assert "No flow data found for MapID W9" in caplog.text


def test_same_identifier_in_two_categories(internal_config):
    reconciler = make_reconciler(internal_config, {
        CANALS: [line_feature({"MapID": "C1"})],
        RIVERS: [line_feature({"MapID": "C1"})],
    })

    features = reconciler.reconcile("table.csv", [{"path": CANALS}, {"path": RIVERS}])

    assert [f.id for f in features] == ["C1_canal", "C1_river"]
    assert features[0].properties.flows == features[1].properties.flows


# =============================================================================
# Identifier, name and category resolution
# =============================================================================

def test_missing_identifier_skipped(internal_config, caplog):
    reconciler = make_reconciler(internal_config, {
        CANALS: [line_feature({"NAME": "No id"}), line_feature({"MAPID": "C1"})],
    })

    with caplog.at_level(logging.WARNING, logger="flowmap.pipeline.reconciler"):
        features = reconciler.reconcile("table.csv", [{"path": CANALS}])

    assert [f.id for f in features] == ["C1_canal"]
    assert "Feature 0 in %s missing MapID" % CANALS in caplog.text


@pytest.mark.parametrize("key", ["MAPID", "MapID", "mapid", "SiteID", "SITEID"])
def test_identifier_aliases(internal_config, key):
    reconciler = make_reconciler(internal_config, {CANALS: [line_feature({key: "C1"})]})
    features = reconciler.reconcile("table.csv", [{"path": CANALS}])
    assert features[0].id == "C1_canal"


def test_identifier_trimmed_before_lookup(internal_config):
    reconciler = make_reconciler(internal_config, {CANALS: [line_feature({"MapID": "  C1 "})]})
    features = reconciler.reconcile("table.csv", [{"path": CANALS}])
    assert features[0].id == "C1_canal"
    assert features[0].properties.flows == {"1979": 10.0, "1980": 12.0}


def test_numeric_identifier_matches_table(internal_config):
    table = "MapID,1979\n12,5\n"
    reconciler = make_reconciler(internal_config, {POINTS: [point_feature({"SiteID": 12.0})]}, table)
    features = reconciler.reconcile("table.csv", [{"path": POINTS}])
    assert features[0].id == "12_weir"
    assert features[0].properties.flows == {"1979": 5.0}


def test_default_name(internal_config):
    reconciler = make_reconciler(internal_config, {CANALS: [line_feature({"MapID": "C1"})]})
    features = reconciler.reconcile("table.csv", [{"path": CANALS}])
    assert features[0].properties.name == "Unknown"


def test_type_override_wins(internal_config):
    reconciler = make_reconciler(internal_config, {CANALS: [line_feature({"MapID": "C1"})]})
    features = reconciler.reconcile("table.csv", [{"path": CANALS, "type_override": "river"}])
    assert features[0].id == "C1_river"
    assert features[0].properties.type == FeatureType.RIVER


def test_points_layer_classified_as_weir(internal_config):
    reconciler = make_reconciler(internal_config, {
        POINTS: [point_feature({"SiteID": "W1", "SiteName": "Calloway Weir", "TYPE": "gate"})],
    })
    features = reconciler.reconcile("table.csv", [{"path": POINTS}])
    assert features[0].id == "W1_weir"
    assert features[0].properties.name == "Calloway Weir"
    assert features[0].geometry == {"type": "Point", "coordinates": [5, 5]}


def test_label_used_for_classification(internal_config):
    locator = "https://host/layers/layer1.geojson"
    reconciler = make_reconciler(internal_config, {locator: [line_feature({"MapID": "R1"})]})
    features = reconciler.reconcile("table.csv", [{"path": locator, "label": "Kern river"}])
    assert features[0].id == "R1_river"


def test_custom_alias_config(make_config):
    config = make_config(id_keys=["SEG"], name_keys=["LABEL"], default_name="n/a")
    reconciler = make_reconciler(config, {
        CANALS: [line_feature({"SEG": "C1", "LABEL": "Alpha"}), line_feature({"MapID": "R1"})],
    })
    features = reconciler.reconcile("table.csv", [{"path": CANALS}])
    assert [(f.id, f.properties.name) for f in features] == [("C1_canal", "Alpha")]


def test_custom_id_column(make_config):
    config = make_config(id_column="SegmentID")
    reconciler = make_reconciler(
        config, {CANALS: [line_feature({"MapID": "S1"})]}, table="SegmentID,2001\nS1,4\n"
    )
    features = reconciler.reconcile("table.csv", [{"path": CANALS}])
    assert features[0].properties.flows == {"2001": 4.0}


# =============================================================================
# Ordering, idempotence, failures
# =============================================================================

def test_source_then_feature_order(make_config):
    config = make_config(max_workers=3)
    reconciler = make_reconciler(config, {
        CANALS: [line_feature({"MapID": "C2"}), line_feature({"MapID": "C1"})],
        RIVERS: [line_feature({"MapID": "R1"})],
        POINTS: [point_feature({"MapID": "W1"})],
    })

    features = reconciler.reconcile(
        "table.csv", [{"path": POINTS}, {"path": CANALS}, {"path": RIVERS}]
    )

    assert [f.id for f in features] == ["W1_weir", "C2_canal", "C1_canal", "R1_river"]


def test_sequential_and_concurrent_agree(make_config):
    sources = {
        CANALS: [line_feature({"MapID": "C1"})],
        RIVERS: [line_feature({"MapID": "R1"})],
        POINTS: [point_feature({"MapID": "W1"})],
    }
    configs = [{"path": CANALS}, {"path": RIVERS}, {"path": POINTS}]

    sequential = make_reconciler(make_config(max_workers=1), sources).reconcile("table.csv", configs)
    concurrent = make_reconciler(make_config(max_workers=8), sources).reconcile("table.csv", configs)

    assert sequential == concurrent


def test_idempotent(internal_config):
    reconciler = make_reconciler(internal_config, {
        CANALS: [line_feature({"MapID": "C1"}), polygon_feature({"MapID": "P"})],
        RIVERS: [multiline_feature({"MapID": "R1"}, [[(0, 0), (1, 1)]])],
    })
    configs = [{"path": CANALS}, {"path": RIVERS}]

    assert reconciler.reconcile("table.csv", configs) == reconciler.reconcile("table.csv", configs)


def test_no_sources(internal_config):
    reconciler = make_reconciler(internal_config, {})
    assert reconciler.reconcile("table.csv", []) == ()


def test_output_is_tuple_of_features(internal_config):
    reconciler = make_reconciler(internal_config, {CANALS: [line_feature({"MapID": "C1"})]})
    features = reconciler.reconcile("table.csv", [{"path": CANALS}])
    assert isinstance(features, tuple)
    assert all(isinstance(f, FlowFeature) for f in features)


def test_table_fetch_failure_propagates(internal_config, fake_fetcher):
    reconciler = FlowReconciler(
        internal_config,
        fetcher=fake_fetcher({"other.csv": TABLE}),
        source_loader=dict_source_loader({CANALS: [line_feature({"MapID": "C1"})]}),
    )

    with pytest.raises(FetchError):
        reconciler.reconcile("table.csv", [{"path": CANALS}])


def test_decode_error_isolated(internal_config, caplog):
    reconciler = make_reconciler(internal_config, {
        CANALS: SourceDecodeError("Unreadable shapefile"),
        RIVERS: [line_feature({"MapID": "R1"})],
    })

    with caplog.at_level(logging.ERROR, logger="flowmap.pipeline.reconciler"):
        features = reconciler.reconcile("table.csv", [{"path": CANALS}, {"path": RIVERS}])

    assert [f.id for f in features] == ["R1_river"]
    assert "Unreadable shapefile" in caplog.text


def test_contract_checked_on_output(internal_config, monkeypatch):
    reconciler = make_reconciler(internal_config, {CANALS: [line_feature({"MapID": "C1"})]})

    def broken(raw, source, flow_by_id, index):
        return FlowFeature.model_validate({
            "id": "C1_river",
            "geometry": raw["geometry"],
            "properties": {"name": "x", "type": "canal", "flows": {}},
        })

    monkeypatch.setattr(reconciler, "_build_feature", broken)

    with pytest.raises(ContractViolation):
        reconciler.reconcile("table.csv", [{"path": CANALS}])


def test_to_feature_collection(internal_config):
    reconciler = make_reconciler(internal_config, {CANALS: [line_feature({"MapID": "C1"})]})
    features = reconciler.reconcile("table.csv", [{"path": CANALS}])

    collection = FlowReconciler.to_feature_collection(features)

    assert collection["type"] == "FeatureCollection"
    assert collection["features"][0]["id"] == "C1_canal"
    assert collection["features"][0]["properties"]["type"] == "canal"
