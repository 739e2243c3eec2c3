"""Reconciliation stage contract.

Enforces the guarantee that the merged output only holds canonical
geometries, identifiers composed from MapID and category, and finite flows.
"""

import math

from flowmap.contracts.base import require

_GEOMETRY_TYPES = {"LineString", "Point"}


def assert_flow_features(features) -> None:
    """Enforce reconciliation output contract.

    Called on the merged collection before FlowReconciler returns it.

    We do NOT check that an identifier appears only once: the same MapID
    may legitimately show up in two categories, and a source may carry the
    same MapID twice.

    Parameters
    ----------
    features : sequence of FlowFeature
        Output of FlowReconciler.reconcile()

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    for feature in features:
        props = feature.properties
        category = getattr(props.type, "value", props.type)

        require(
            feature.id.endswith(f"_{category}"),
            f"Feature contract violated: id '{feature.id}' does not end with '_{category}'"
        )

        geom_type = feature.geometry.get("type")
        require(
            geom_type in _GEOMETRY_TYPES,
            f"Feature contract violated: '{feature.id}' has geometry {geom_type}, "
            f"expected one of {sorted(_GEOMETRY_TYPES)}"
        )
        if geom_type == "LineString":
            require(
                len(feature.geometry.get("coordinates") or []) >= 2,
                f"Feature contract violated: LineString '{feature.id}' has fewer than 2 positions"
            )

        require(
            props.flows is not None,
            f"Feature contract violated: '{feature.id}' has no flows mapping"
        )
        require(
            all(math.isfinite(v) for v in props.flows.values()),
            f"Feature contract violated: '{feature.id}' has non-finite flow values"
        )
