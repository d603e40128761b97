"""
Row-oriented output for feature collections.

Features become flat row dicts: element metadata as scalar columns, tags
as a JSON string with sorted keys (so identical tags always hash the
same), and geometry as EWKB hex carrying the SRID. Rows are yielded in
batches for staged loading.

Usage:
    from osmshapes.writers.rows import feature_rows

    for batch in feature_rows(features, geometry_column="geom", batch_size=5000):
        stager.write_batch(batch)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import Any

import pandas as pd
from shapely import wkb as shapely_wkb

from osmshapes.features import OSMFeature

logger = logging.getLogger(__name__)

ROW_COLUMNS = (
    "osm_id",
    "osm_type",
    "geometry_kind",
    "tags",
    "osm_timestamp",
    "osm_version",
    "osm_changeset",
    "osm_user",
    "osm_uid",
    "osm_visible",
)


def feature_row(
    feature: OSMFeature,
    geometry_column: str = "geom",
    srid: int = 4326,
) -> dict[str, Any]:
    meta = feature.meta
    return {
        "osm_id": meta.id,
        "osm_type": feature.element_type,
        "geometry_kind": feature.kind.value,
        "tags": json.dumps(meta.tags, sort_keys=True),
        "osm_timestamp": meta.timestamp.isoformat() if meta.timestamp else None,
        "osm_version": meta.version,
        "osm_changeset": meta.changeset,
        "osm_user": meta.user,
        "osm_uid": meta.uid,
        "osm_visible": meta.visible,
        geometry_column: shapely_wkb.dumps(feature.geometry, hex=True, srid=srid),
    }


def feature_rows(
    features: Iterable[OSMFeature],
    geometry_column: str = "geom",
    srid: int = 4326,
    batch_size: int = 5000,
) -> Iterator[list[dict[str, Any]]]:
    """
    Yield features as batches of row dicts.

    Args:
        features:        Any iterable of OSMFeature.
        geometry_column: Name of the geometry column in each row.
        srid:            Spatial reference ID embedded in the EWKB.
        batch_size:      Rows per yielded batch.
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    batch: list[dict[str, Any]] = []
    for feature in features:
        batch.append(feature_row(feature, geometry_column, srid))
        if len(batch) >= batch_size:
            yield batch
            batch = []

    if batch:
        yield batch


def features_to_frame(
    features: Iterable[OSMFeature],
    geometry_column: str = "geom",
    srid: int = 4326,
) -> pd.DataFrame:
    """The rows of feature_rows() as a single DataFrame."""
    rows = [feature_row(f, geometry_column, srid) for f in features]
    return pd.DataFrame(rows, columns=[*ROW_COLUMNS, geometry_column])


class FrameSink:
    """An in-memory sink that collects written batches into a DataFrame."""

    def __init__(self, geometry_column: str = "geom") -> None:
        self.geometry_column = geometry_column
        self._rows: list[dict[str, Any]] = []

    def write_batch(self, batch: list[dict[str, Any]]) -> None:
        self._rows.extend(batch)
        logger.debug("Buffered %d rows (%d total)", len(batch), len(self._rows))

    @property
    def rows_written(self) -> int:
        return len(self._rows)

    def frame(self) -> pd.DataFrame:
        return pd.DataFrame(self._rows, columns=[*ROW_COLUMNS, self.geometry_column])
