from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class ConversionRun:
    """Tracks a single conversion run's state."""

    spec_name: str
    source: str
    mode: str
    metadata: dict[str, Any] = field(default_factory=dict)
    elements_read: int = 0
    features_written: int = 0
    status: str = "running"
    started_at: datetime | None = None
    completed_at: datetime | None = None
    error: str | None = None

    def __enter__(self) -> ConversionRun:
        self.started_at = datetime.now(UTC)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.completed_at = datetime.now(UTC)
        if exc_type is not None:
            self.status = "failed"
            self.error = str(exc_val)
        elif self.error is not None:
            self.status = "failed"
        else:
            self.status = "success"
        return False

    @property
    def duration(self) -> float | None:
        if self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


class ConversionTracker:
    """
    Keeps the history of conversion runs in memory.

    Each run is registered before it starts, so a run that raises is still
    listed, with status "failed".
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger("conversion_tracker")
        self._runs: list[ConversionRun] = []

    @contextmanager
    def track(
        self,
        spec_name: str,
        source: str,
        mode: str,
        metadata: dict[str, Any] | None = None,
    ) -> Iterator[ConversionRun]:
        """Create, yield, and record a ConversionRun."""
        run = ConversionRun(
            spec_name=spec_name,
            source=source,
            mode=mode,
            metadata=metadata or {},
        )
        self._runs.append(run)
        with run:
            yield run
        self.logger.info(
            "Run %r finished with status %s (%d elements, %d features)",
            run.spec_name,
            run.status,
            run.elements_read,
            run.features_written,
        )

    @property
    def runs(self) -> list[ConversionRun]:
        return list(self._runs)

    @property
    def last_run(self) -> ConversionRun | None:
        return self._runs[-1] if self._runs else None

    def failed_runs(self) -> list[ConversionRun]:
        return [run for run in self._runs if run.status == "failed"]
