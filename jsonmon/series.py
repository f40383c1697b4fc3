"""Fixed-capacity metric history and counter → rate derivation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from jsonmon.spec import MetricSpec


@dataclass(frozen=True)
class SeriesPoint:
    timestamp: float
    value: float


def extract(data: Any, path: tuple[str, ...]) -> float | None:
    """Walk ``path`` through decoded JSON and return the numeric leaf.

    Returns None when a segment is missing or the leaf is not a finite
    number. Booleans are not numbers here even though Python says so.
    """
    node = data
    for seg in path:
        if isinstance(node, dict):
            if seg not in node:
                return None
            node = node[seg]
        elif isinstance(node, list):
            digits = seg[1:] if seg.startswith("-") else seg
            if not (digits.isascii() and digits.isdigit()):
                return None
            try:
                node = node[int(seg)]
            except IndexError:
                return None
        else:
            return None
    if isinstance(node, bool) or not isinstance(node, (int, float)):
        return None
    try:
        value = float(node)
    except OverflowError:
        # integer too large for a float
        return None
    if not math.isfinite(value):
        return None
    return value


class SeriesBuffer:
    """Ring of the last ``steps`` points for one metric.

    Slots are preallocated; ``_head`` indexes the oldest point, so
    appending to a full buffer overwrites it in place.
    """

    def __init__(self, spec: MetricSpec, steps: int):
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")
        self.spec = spec
        self.steps = steps
        self._slots: list[SeriesPoint | None] = [None] * steps
        self._head = 0
        self._count = 0
        # counter baseline
        self._last_raw: float | None = None
        self._last_ts: float | None = None

    def __len__(self) -> int:
        return self._count

    def append(self, point: SeriesPoint) -> None:
        if self._count < self.steps:
            self._slots[(self._head + self._count) % self.steps] = point
            self._count += 1
        else:
            self._slots[self._head] = point
            self._head = (self._head + 1) % self.steps

    def points(self) -> tuple[SeriesPoint, ...]:
        """Snapshot of the buffered points, oldest → newest."""
        return tuple(
            self._slots[(self._head + i) % self.steps] for i in range(self._count)
        )

    def last(self) -> SeriesPoint | None:
        if not self._count:
            return None
        return self._slots[(self._head + self._count - 1) % self.steps]

    def ingest(self, data: Any, timestamp: float) -> SeriesPoint | None:
        """Extract this metric from one decoded sample.

        Returns the appended point, or None if nothing was emitted
        (missing field, first counter reading, non-increasing timestamp).
        """
        value = extract(data, self.spec.path)
        if value is None:
            return None
        if not self.spec.is_counter:
            point = SeriesPoint(timestamp, value)
            self.append(point)
            return point
        return self._ingest_counter(value, timestamp)

    def _ingest_counter(self, value: float, timestamp: float) -> SeriesPoint | None:
        if self._last_raw is None:
            self._last_raw, self._last_ts = value, timestamp
            return None

        dt = timestamp - self._last_ts
        if dt <= 0:
            # duplicate or out-of-order; keep the baseline
            return None

        dv = value - self._last_raw
        if dv < 0:
            # counter reset upstream: count from zero
            dv = value

        self._last_raw, self._last_ts = value, timestamp
        point = SeriesPoint(timestamp, dv / dt)
        self.append(point)
        return point
