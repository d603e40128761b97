"""
Diagnostic reporting for multipolygon assembly.

An ErrorReporter is configuration: given a function that describes a
failing feature, it returns a recorder that is called once per failure.
Reporting is a side channel. Assembly results never depend on it, and a
reporter that raises is logged and ignored.

Usage:
    log = DiagnosticLog()
    features = to_snapshot(log, nodes, ways, relations)
    print(log.counts())

    # Or only log the failures:
    features = to_snapshot(logging_reporter(logger), nodes, ways, relations)
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from functools import partial

from osmshapes.features import OSMFeature

logger = logging.getLogger(__name__)

Describer = Callable[[OSMFeature], str]
Recorder = Callable[[OSMFeature], None]
ErrorReporter = Callable[[Describer], Recorder]


class DiagnosticKind(str, Enum):
    RING_UNCLOSABLE = "ring_unclosable"
    NO_OUTER_RING = "no_outer_ring"
    UNCLOSED_MEMBER = "unclosed_member"
    UNASSIGNED_INNER = "unassigned_inner"
    INVALID_GEOMETRY = "invalid_geometry"
    MISSING_MEMBER = "missing_member"


@dataclass(frozen=True)
class Diagnostic:
    """
    A structured description of one assembly failure.

    Instances are callable, so they can be handed to any ErrorReporter as
    the describer. Structured sinks such as DiagnosticLog read the fields
    directly.
    """

    kind: DiagnosticKind
    relation_id: int
    role: str = ""
    way_ids: tuple[int, ...] = ()

    def __call__(self, feature: OSMFeature) -> str:
        return self.describe(feature)

    def describe(self, feature: OSMFeature) -> str:
        ways = ", ".join(str(w) for w in self.way_ids)
        if self.kind is DiagnosticKind.RING_UNCLOSABLE:
            return (
                f"relation {self.relation_id}: {self.role} way(s) [{ways}] "
                f"could not be closed into a ring"
            )
        if self.kind is DiagnosticKind.NO_OUTER_RING:
            return f"relation {self.relation_id}: no valid outer ring"
        if self.kind is DiagnosticKind.UNCLOSED_MEMBER:
            role = self.role or "<empty>"
            return (
                f"relation {self.relation_id}: way {feature.id} with role {role!r} "
                f"is not closed"
            )
        if self.kind is DiagnosticKind.UNASSIGNED_INNER:
            return (
                f"relation {self.relation_id}: inner ring from way(s) [{ways}] "
                f"is not inside any outer ring"
            )
        if self.kind is DiagnosticKind.MISSING_MEMBER:
            return (
                f"relation {self.relation_id}: member way(s) [{ways}] "
                f"have no usable geometry"
            )
        return (
            f"relation {self.relation_id}: {self.role} ring(s) from way(s) [{ways}] "
            f"do not form a valid polygon"
        )


@dataclass(frozen=True)
class Issue:
    """One recorded failure."""

    kind: DiagnosticKind | None
    feature_id: int
    message: str
    way_ids: tuple[int, ...] = ()


class DiagnosticLog:
    """
    An ErrorReporter that keeps every reported failure in memory.

    Describers that are Diagnostic instances keep their kind and way ids;
    plain describers are recorded with kind None.
    """

    def __init__(self) -> None:
        self._issues: list[Issue] = []

    def __call__(self, describe: Describer) -> Recorder:
        return partial(self._record, describe)

    def _record(self, describe: Describer, feature: OSMFeature) -> None:
        message = describe(feature)
        if isinstance(describe, Diagnostic):
            issue = Issue(describe.kind, feature.id, message, describe.way_ids)
        else:
            issue = Issue(None, feature.id, message)
        self._issues.append(issue)
        logger.debug("Assembly issue: %s", message)

    @property
    def issues(self) -> list[Issue]:
        return list(self._issues)

    def __len__(self) -> int:
        return len(self._issues)

    def counts(self) -> Counter:
        return Counter(issue.kind for issue in self._issues)

    def clear(self) -> None:
        self._issues.clear()


def logging_reporter(
    target: logging.Logger | None = None,
    level: int = logging.WARNING,
) -> ErrorReporter:
    """An ErrorReporter that writes each failure to a logger."""
    target = target or logger

    def reporter(describe: Describer) -> Recorder:
        def record(feature: OSMFeature) -> None:
            target.log(level, describe(feature))

        return record

    return reporter
