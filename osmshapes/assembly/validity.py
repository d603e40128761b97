"""
Topological validity filter.

Ways cut by an extract's bounding box keep only a subset of their nodes,
and the resulting polygons are often self-intersecting. They are removed
here rather than repaired.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import shapely

from osmshapes.features import OSMFeature

logger = logging.getLogger(__name__)


def is_valid_feature(feature: OSMFeature) -> bool:
    return bool(feature.geometry.is_valid)


def filter_valid(features: Iterable[OSMFeature]) -> list[OSMFeature]:
    """Keep only features whose geometry satisfies the OGC validity rules."""
    kept: list[OSMFeature] = []
    rejected = 0
    for feature in features:
        if is_valid_feature(feature):
            kept.append(feature)
            continue
        rejected += 1
        logger.debug(
            "Removing invalid %s %d: %s",
            feature.kind.value,
            feature.id,
            shapely.is_valid_reason(feature.geometry),
        )

    if rejected:
        logger.info("Removed %d invalid geometries, kept %d", rejected, len(kept))
    return kept
