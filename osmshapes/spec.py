"""
ConversionSpec: what to convert and how to write it out.

One spec = one element source = one feature output.

Usage:
    from osmshapes.spec import ConversionSpec

    spec = ConversionSpec(
        name="chicago_snapshot",
        source="chicago.osm.pbf",
    )

    # Every version of every way, from a full-history extract:
    spec = ConversionSpec(
        name="chicago_history",
        source="chicago.osh.pbf",
        mode="history",
        batch_size=20_000,
    )
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

VALID_MODES = ("snapshot", "history")


@dataclass
class ConversionSpec:
    """
    Defines a single element-to-feature conversion.

    Parameters
    ----------
    name : str
        Human-readable name (e.g. "chicago_snapshot").
    source : str | Path
        Path to an OSM file pyosmium can read.
    mode : str
        "snapshot" for the current state of every element, or "history"
        for one feature per way version. Default "snapshot".
    geometry_column : str
        Name for the geometry column in output rows. Default "geom".
    srid : int
        Spatial reference ID embedded in the output EWKB. Default 4326.
    batch_size : int
        Rows per batch handed to the sink. Default 5000.
    """

    name: str
    source: str | Path
    mode: str = "snapshot"
    geometry_column: str = "geom"
    srid: int = 4326
    batch_size: int = 5000

    def __post_init__(self):
        if self.mode not in VALID_MODES:
            raise ValueError(f"mode must be one of {VALID_MODES}, got {self.mode!r}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        self.source = Path(self.source)
