"""
Element reader for tabular OSM extracts.

Converts a pandas DataFrame laid out like the osm2orc schema (one row per
element, with a "type" column of node/way/relation) into typed records.
Only the columns below are read; any others are ignored.

    type, id, lat, lon, nds, members, tags,
    user, uid, changeset, version, timestamp, visible

"nds" holds node references (ints, or dicts with a "ref" key) and
"members" holds dicts with "type", "ref" and "role" keys.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import pandas as pd

from osmshapes.elements import ElementMeta, Member, Node, Relation, Way
from osmshapes.parsers.result import ElementSet, ReadResult

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("type", "id")


def read_frame(df: pd.DataFrame, source: str = "<dataframe>") -> ReadResult:
    """
    Convert a DataFrame of OSM elements into an ElementSet.

    Args:
        df:     One row per element version.
        source: Label used in log messages and the ReadResult.

    Returns:
        A ReadResult; rows of unknown type are skipped, structural problems
        (missing columns, unparseable values) are returned as the error.
    """
    result = ReadResult(source=source)

    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        result.error = f"Missing required columns: {missing}"
        logger.error("Cannot read %s: %s", source, result.error)
        return result

    elements = ElementSet()
    skipped = 0
    try:
        for row in df.to_dict("records"):
            element_type = str(row["type"]).lower()
            if element_type == "node":
                elements.nodes.append(_node(row))
            elif element_type == "way":
                elements.ways.append(_way(row))
            elif element_type == "relation":
                elements.relations.append(_relation(row))
            else:
                skipped += 1
    except (KeyError, TypeError, ValueError) as e:
        logger.error("Failed to read %s: %s", source, e)
        result.error = str(e)
        return result

    if skipped:
        logger.warning("Skipped %d rows of unknown element type in %s", skipped, source)
    logger.info(
        "Read %d nodes, %d ways, %d relations from %s",
        len(elements.nodes),
        len(elements.ways),
        len(elements.relations),
        source,
    )
    result.elements = elements
    return result


def _is_null(value: Any) -> bool:
    # pd.isna() is elementwise on list-valued cells, so check scalars only.
    if value is None or value is pd.NaT or value is pd.NA:
        return True
    return isinstance(value, float) and math.isnan(value)


def _timestamp(value: Any) -> datetime:
    if _is_null(value):
        return datetime.fromtimestamp(0, UTC)
    stamp = pd.Timestamp(value)
    if stamp.tzinfo is None:
        stamp = stamp.tz_localize(UTC)
    return stamp.to_pydatetime()


def _meta(row: Mapping[str, Any]) -> ElementMeta:
    tags = row.get("tags")
    visible = row.get("visible")
    return ElementMeta(
        id=int(row["id"]),
        user="" if _is_null(row.get("user")) else str(row["user"]),
        uid=0 if _is_null(row.get("uid")) else int(row["uid"]),
        changeset=0 if _is_null(row.get("changeset")) else int(row["changeset"]),
        version=0 if _is_null(row.get("version")) else int(row["version"]),
        timestamp=_timestamp(row.get("timestamp")),
        visible=True if _is_null(visible) else bool(visible),
        tags={} if _is_null(tags) else {str(k): str(v) for k, v in dict(tags).items()},
    )


def _node(row: Mapping[str, Any]) -> Node:
    lat = row.get("lat")
    lon = row.get("lon")
    return Node(
        lat=0.0 if _is_null(lat) else float(lat),
        lon=0.0 if _is_null(lon) else float(lon),
        meta=_meta(row),
    )


def _way(row: Mapping[str, Any]) -> Way:
    nds = row.get("nds")
    refs = [] if _is_null(nds) else list(nds)
    node_refs = tuple(int(n["ref"]) if isinstance(n, Mapping) else int(n) for n in refs)
    return Way(node_refs=node_refs, meta=_meta(row))


def _relation(row: Mapping[str, Any]) -> Relation:
    raw = row.get("members")
    members = tuple(
        Member(type=m["type"], ref=int(m["ref"]), role=m.get("role") or "")
        for m in ([] if _is_null(raw) else list(raw))
    )
    return Relation(members=members, meta=_meta(row))
