"""
OSM element-to-feature conversion pipeline.

Reads an OSM file, converts its elements to features in snapshot or
history mode, and writes the features as row batches to a sink.

A sink is anything with a write_batch(rows) method, such as
osmshapes.writers.rows.FrameSink or a database stager.

Usage:
    from osmshapes.pipeline import FeaturePipeline
    from osmshapes.spec import ConversionSpec
    from osmshapes.writers.rows import FrameSink

    spec = ConversionSpec(name="chicago_snapshot", source="chicago.osm.pbf")

    sink = FrameSink()
    pipeline = FeaturePipeline(sink=sink)
    summary = pipeline.run(spec)
    df = sink.frame()
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from osmshapes.assembly.relation_graph import decompose
from osmshapes.convert import to_history, to_snapshot
from osmshapes.diagnostics import Describer, DiagnosticLog, ErrorReporter, Recorder
from osmshapes.elements import keyed
from osmshapes.features import GeometryKind, OSMFeature
from osmshapes.parsers.pbf import read_elements
from osmshapes.parsers.result import ElementSet
from osmshapes.spec import ConversionSpec
from osmshapes.writers.rows import feature_rows


class FeaturePipeline:
    """
    Orchestrates reading, converting, and writing one ConversionSpec.

    Parameters
    ----------
    sink : object
        Receives row batches through write_batch(rows).
    tracker : ConversionTracker, optional
        If provided, records each run.
    report : ErrorReporter, optional
        Also receives every assembly failure. Failures are always counted
        in the run summary whether or not a reporter is given.
    """

    def __init__(self, sink, tracker=None, report: ErrorReporter | None = None):
        self.sink = sink
        self.tracker = tracker
        self.report = report
        self.diagnostics = DiagnosticLog()
        self.logger = logging.getLogger("feature_pipeline")

    def run(self, spec: ConversionSpec) -> dict[str, Any]:
        """
        Read spec.source and convert it.

        Read, convert and write failures are recorded in the summary's
        "errors" list with their stage. Nothing is raised.

        Returns a summary dict.
        """
        if self.tracker is None:
            return self._run(spec, None)

        with self.tracker.track(
            spec_name=spec.name,
            source=str(spec.source),
            mode=spec.mode,
        ) as run:
            summary = self._run(spec, None)
            run.elements_read = summary["elements_read"]
            run.features_written = summary["features_written"]
            for key in ("points", "lines", "polygons", "multipolygons", "diagnostics"):
                run.metadata[key] = summary[key]
            if summary["errors"]:
                run.error = "; ".join(f"{e['stage']}: {e['error']}" for e in summary["errors"])
        return summary

    def run_elements(self, spec: ConversionSpec, elements: ElementSet) -> dict[str, Any]:
        """Convert and write elements that were already read, e.g. by read_frame()."""
        return self._run(spec, elements)

    def _run(self, spec: ConversionSpec, elements: ElementSet | None) -> dict[str, Any]:
        summary: dict[str, Any] = {
            "spec_name": spec.name,
            "mode": spec.mode,
            "elements_read": 0,
            "features_written": 0,
            "points": 0,
            "lines": 0,
            "polygons": 0,
            "multipolygons": 0,
            "diagnostics": 0,
            "relation_trees": 0,
            "relation_edges": 0,
            "relation_edges_cut": 0,
            "errors": [],
        }

        if elements is None:
            result = read_elements(spec.source)
            if not result.ok:
                summary["errors"].append({"stage": "read", "error": result.error})
                self.logger.error("Failed to read %s: %s", spec.source, result.error)
                return summary
            elements = result.elements
        summary["elements_read"] = len(elements)

        self.diagnostics.clear()
        try:
            features = self._convert(spec, elements, summary)
        except Exception as e:
            self.logger.error("Failed to convert %s: %s", spec.name, e)
            summary["errors"].append({"stage": "convert", "error": str(e)})
            return summary
        summary["diagnostics"] = len(self.diagnostics)
        if self.diagnostics:
            self.logger.warning(
                "%s: %d multipolygon assembly issues reported",
                spec.name,
                len(self.diagnostics),
            )

        kinds = Counter(f.kind for f in features)
        summary["points"] = kinds[GeometryKind.POINT]
        summary["lines"] = kinds[GeometryKind.LINE]
        summary["polygons"] = kinds[GeometryKind.POLYGON]
        summary["multipolygons"] = kinds[GeometryKind.MULTIPOLYGON]

        try:
            summary["features_written"] = self._write(spec, features)
        except Exception as e:
            self.logger.error("Failed to write %s: %s", spec.name, e)
            summary["errors"].append({"stage": "write", "error": str(e)})

        self.logger.info("Conversion complete for %r: %s", spec.name, summary)
        return summary

    # ------------------------------------------------------------------ #
    #  Core: convert → write
    # ------------------------------------------------------------------ #

    def _convert(
        self,
        spec: ConversionSpec,
        elements: ElementSet,
        summary: dict[str, Any],
    ) -> list[OSMFeature]:
        self.logger.info(
            "Converting %s (mode=%s, %d elements)",
            spec.name,
            spec.mode,
            len(elements),
        )

        if spec.mode == "history":
            points, lines, polygons = to_history(elements.nodes, elements.ways)
            return [*points, *lines, *polygons]

        relations = keyed(elements.relations)
        forest = decompose(
            {rid: rel for rid, rel in relations.items() if not rel.is_multipolygon}
        )
        summary["relation_trees"] = len(forest.roots())
        summary["relation_edges"] = len(forest.edges())
        summary["relation_edges_cut"] = len(forest.cut_edges)

        return to_snapshot(self._reporter, elements.nodes, elements.ways, relations)

    def _reporter(self, describe: Describer) -> Recorder:
        recorders = [self.diagnostics(describe)]
        if self.report is not None:
            recorders.append(self.report(describe))

        def record(feature: OSMFeature) -> None:
            for recorder in recorders:
                recorder(feature)

        return record

    def _write(self, spec: ConversionSpec, features: list[OSMFeature]) -> int:
        total_rows = 0
        for batch in feature_rows(
            features,
            geometry_column=spec.geometry_column,
            srid=spec.srid,
            batch_size=spec.batch_size,
        ):
            self.sink.write_batch(batch)
            total_rows += len(batch)
            self.logger.info("%s: %d rows written", spec.name, total_rows)
        return total_rows
