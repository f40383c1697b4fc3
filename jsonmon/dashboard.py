"""Dashboard — the specs, their buffers, and the lock between the two loops.

The ingestion thread is the only writer (ingest); the render loop only
reads (snapshot/render/render_text). Both take the same lock, so a render
sees a sample either fully applied or not at all.
"""

from __future__ import annotations

import threading

from jsonmon.render import PALETTE, Image, render_graph
from jsonmon.series import SeriesBuffer, SeriesPoint
from jsonmon.sources import RawSample
from jsonmon.spec import MetricSpec
from jsonmon.textplot import render_text

# ---- value formatting ----

SI_UNITS = [("", 1), ("k", 1e3), ("M", 1e6), ("G", 1e9), ("T", 1e12)]


def format_value(value: float) -> str:
    """Format a value with an SI suffix so the legend stays short."""
    for name, divisor in reversed(SI_UNITS):
        if abs(value) >= divisor:
            return f"{value / divisor:.1f}{name}"
    return f"{value:.2f}"


Snapshot = list[tuple[MetricSpec, tuple[SeriesPoint, ...]]]


class Dashboard:
    def __init__(self, specs: list[MetricSpec], steps: int = 100, *,
                 thickness: int = 2):
        self.specs = list(specs)
        self.steps = steps
        self.thickness = thickness
        self._buffers = [SeriesBuffer(spec, steps) for spec in self.specs]
        self._lock = threading.Lock()

    def ingest(self, sample: RawSample) -> int:
        """Apply one sample to every metric; returns how many points were added."""
        added = 0
        with self._lock:
            for buf in self._buffers:
                if buf.ingest(sample.data, sample.timestamp) is not None:
                    added += 1
        return added

    def snapshot(self) -> Snapshot:
        """Current points of every metric, in declaration order."""
        with self._lock:
            return [(buf.spec, buf.points()) for buf in self._buffers]

    def legend(self, snap: Snapshot | None = None) -> list[str]:
        """Labels with the newest value, e.g. ``req/s 12.3k``."""
        if snap is None:
            snap = self.snapshot()
        labels = []
        for spec, points in snap:
            if points:
                labels.append(f"{spec.label} {format_value(points[-1].value)}")
            else:
                labels.append(spec.label)
        return labels

    def render(self, width: int, height: int) -> Image:
        windows = [points for _, points in self.snapshot()]
        return render_graph(windows, width, height, self.steps,
                            palette=PALETTE, thickness=self.thickness)

    def render_text(self, columns: int, rows: int, *, legend: bool = True) -> str:
        snap = self.snapshot()
        windows = [points for _, points in snap]
        return render_text(windows, self.legend(snap), columns, rows, self.steps,
                           legend=legend)
