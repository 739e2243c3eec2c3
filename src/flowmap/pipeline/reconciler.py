"""Source reconciliation: join geometry sources against the flow table.

The reconciler fetches the flow table and every geometry source, matches
each geometry feature to its table row by MapID, classifies it, normalizes
its geometry, and returns one flat tuple of FlowFeature records.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TYPE_CHECKING, Union

from flowmap.contracts import assert_flow_features, assert_flow_table
from flowmap.data.classifier import classify_feature
from flowmap.data.geometry import GeometryNormalizationError, normalize_geometry
from flowmap.data.models import (
    FeatureType,
    FlowFeature,
    FlowProperties,
    GeometrySourceConfig,
    probe_attribute,
)
from flowmap.data.sources import SourceFetcher, fetch_source_features
from flowmap.data.table import parse_flow_table

if TYPE_CHECKING:
    from flowmap.schemas import InternalConfig

__all__ = ['FlowReconciler']

logger = logging.getLogger(__name__)

FlowByIdentifier = Dict[str, Dict[str, float]]


class FlowReconciler:
    """Merges the flow table with geometry sources into FlowFeature records.

    **Algorithm:**

    1. **Table**: fetch and parse the flow table. A failure here (missing
       file, HTTP error, undecodable text) propagates to the caller; it is
       the only failure that aborts a run.

    2. **Sources**: every geometry source is fetched and decoded
       independently. Sources are fetched concurrently in a thread pool, but
       results are always assembled in configuration order. A source that
       cannot be fetched or decoded is logged and contributes nothing.

    3. **Features**: for every raw feature:
       - resolve MapID through the configured alias keys (skip if none)
       - look up yearly flows (empty mapping if the table has no row)
       - resolve display name (default "Unknown")
       - category from the source override or the classifier
       - normalize geometry to LineString/Point (skip if unsupported)
       - build ``FlowFeature(id="<MapID>_<type>")``

    4. **Contract**: the merged tuple is checked by assert_flow_features.

    The reconciler holds no state between runs; calling reconcile() twice
    on the same inputs gives equal output in the same order.

    Example usage::

        reconciler = FlowReconciler(config)
        features = reconciler.reconcile(
            "data/0_KERN_RIVER_MASTER_DATA_rev6.csv",
            [
                {"path": "data/Canals_KernRiver_Merged_rev.shp"},
                {"path": "data/NHDStreamRiverKernRiver_rev.shp", "type_override": "river"},
            ],
        )
    """

    def __init__(self, config: "InternalConfig",
                 fetcher: Optional[SourceFetcher] = None,
                 source_loader: Optional[Callable[[SourceFetcher, str], List[dict]]] = None):
        """Initialize reconciler with validated configuration.

        Parameters
        ----------
        config : InternalConfig
            Fully validated runtime configuration. Uses ``table``,
            ``attributes`` and ``fetch`` sections.

        fetcher : SourceFetcher, optional
            Retrieves table and source bytes. Created from ``config.fetch``
            if not provided. Allows injection for testing.

        source_loader : callable, optional
            ``loader(fetcher, locator) -> list of raw features``. Defaults to
            fetch_source_features (shapefile pairs and GeoJSON).
        """
        self.config = config
        self.id_column = config.table.id_column
        self.id_keys = list(config.attributes.id_keys)
        self.name_keys = list(config.attributes.name_keys)
        self.type_keys = list(config.attributes.type_keys)
        self.default_name = config.attributes.default_name
        self.max_workers = config.fetch.max_workers

        self.fetcher = fetcher or SourceFetcher(timeout_sec=config.fetch.timeout_sec)
        self._load_source = source_loader or fetch_source_features

    def reconcile(self, table_locator: str,
                  source_configs: Iterable[Union[GeometrySourceConfig, Mapping]]
                  ) -> Tuple[FlowFeature, ...]:
        """Run one reconciliation.

        Parameters
        ----------
        table_locator : str
            Path or URL of the flow table.
        source_configs : iterable of GeometrySourceConfig or dict
            Geometry sources, in output order.

        Returns
        -------
        tuple of FlowFeature
            Source order, then feature order within each source.

        Raises
        ------
        FetchError, SourceDecodeError, pandas.errors.ParserError
            If the flow table cannot be fetched or decoded.
        ContractViolation
            If the merged output breaks its invariants (pipeline bug).
        """
        sources = [
            s if isinstance(s, GeometrySourceConfig) else GeometrySourceConfig.model_validate(s)
            for s in source_configs
        ]
        logger.info("Starting data load: table=%s, sources=%d", table_locator, len(sources))

        text = self.fetcher.fetch_text(table_locator)
        flow_by_id = parse_flow_table(text, self.id_column)
        assert_flow_table(flow_by_id)
        logger.info("Flow data map created. Entries: %d", len(flow_by_id))

        if not sources:
            logger.info("No geometry sources configured")
            return ()

        workers = min(self.max_workers, len(sources))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="flowmap-source") as pool:
            per_source = list(pool.map(lambda s: self._process_source(s, flow_by_id), sources))

        features = tuple(feature for chunk in per_source for feature in chunk)
        assert_flow_features(features)

        logger.info("All data processed. Total features: %d", len(features))
        return features

    def _process_source(self, source: GeometrySourceConfig,
                        flow_by_id: FlowByIdentifier) -> List[FlowFeature]:
        """Fetch, decode and convert one source. Never raises."""
        logger.info("Processing geometry source: %s", source.path)
        try:
            raw_features = self._load_source(self.fetcher, source.path)
            logger.info("Source %s read. Features found: %d", source.path, len(raw_features))

            built = []
            for index, raw in enumerate(raw_features):
                feature = self._build_feature(raw, source, flow_by_id, index)
                if feature is not None:
                    built.append(feature)
        except Exception as e:
            logger.error("Error processing geometry source %s: %s", source.path, e)
            return []

        logger.info("Source %s contributed %d features", source.path, len(built))
        return built

    def _build_feature(self, raw: Mapping, source: GeometrySourceConfig,
                       flow_by_id: FlowByIdentifier, index: int) -> Optional[FlowFeature]:
        """Convert one raw feature, or return None if it must be skipped."""
        properties = raw.get("properties") or {}

        identifier = probe_attribute(properties, self.id_keys)
        identifier = identifier.strip() if identifier is not None else None
        if not identifier:
            logger.warning(
                "Feature %d in %s missing MapID. Properties: %s", index, source.path, dict(properties)
            )
            return None

        flows = flow_by_id.get(identifier)
        if flows is None:
            logger.warning(
                "No flow data found for MapID %s from %s. Assigning empty flows.",
                identifier, source.path
            )
            flows = {}

        name = probe_attribute(properties, self.name_keys) or self.default_name

        if source.type_override is not None:
            feature_type = FeatureType(source.type_override)
        else:
            feature_type = classify_feature(source.source_label, properties, self.type_keys)

        try:
            geometry = normalize_geometry(raw.get("geometry"))
        except GeometryNormalizationError as e:
            logger.warning(
                "Feature for MapID %s in %s has unsupported geometry type: %s (%s). Skipping.",
                identifier, source.path, e.kind, e
            )
            return None

        return FlowFeature(
            id=f"{identifier}_{feature_type.value}",
            geometry=geometry,
            properties=FlowProperties(name=name, type=feature_type, flows=dict(flows)),
        )

    @staticmethod
    def to_feature_collection(features: Iterable[FlowFeature]) -> dict:
        """Return ``features`` as a GeoJSON FeatureCollection dict."""
        return {
            "type": "FeatureCollection",
            "features": [feature.to_geojson() for feature in features],
        }
