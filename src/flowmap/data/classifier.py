"""Decide whether a geometry feature is a river, a canal or a weir.

Classification looks at the source label (usually the file path) first and
only then at the feature's attributes. Labels mentioning ``point`` or
``weir`` always give a weir: point layers in the flow dataset hold weirs and
diversion structures only, so the ``TYPE`` attribute is read but does not
change the outcome.
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from flowmap.data.models import FeatureType, probe_attribute

__all__ = ['classify_feature', 'DEFAULT_TYPE_KEYS']

logger = logging.getLogger(__name__)

DEFAULT_TYPE_KEYS = ("TYPE",)


def classify_feature(source_label: Optional[str],
                     attributes: Optional[Mapping[str, Any]] = None,
                     type_keys: Sequence[str] = DEFAULT_TYPE_KEYS) -> FeatureType:
    """Classify a feature from its source label and attributes.

    Matching is case-insensitive substring matching on ``source_label``:

    1. ``point`` or ``weir`` -> weir
    2. ``canal`` -> canal
    3. ``river`` -> river
    4. anything else -> canal

    Parameters
    ----------
    source_label : str or None
        File path or source name of the feature's layer.
    attributes : mapping, optional
        Attribute bag of the feature.
    type_keys : sequence of str, optional
        Attribute keys probed for an explicit type (default ``("TYPE",)``).

    Returns
    -------
    FeatureType
        Never raises.

    Examples
    --------
    >>> classify_feature("/data/NHDStreamRiverKernRiver_rev.shp").value
    'river'
    >>> classify_feature("/data/Points_Metro_Bak_Canals_Rev.shp", {"TYPE": "gate"}).value
    'weir'
    """
    label = (source_label or "").lower()

    if "point" in label or "weir" in label:
        explicit = probe_attribute(attributes if isinstance(attributes, Mapping) else None, type_keys)
        if explicit is not None and explicit.strip().lower() == FeatureType.WEIR.value:
            return FeatureType.WEIR
        # Point layers only carry weirs; a different TYPE value is not trusted
        return FeatureType.WEIR

    if "canal" in label:
        return FeatureType.CANAL

    if "river" in label:
        return FeatureType.RIVER

    return FeatureType.CANAL
