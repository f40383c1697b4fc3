"""Metric spec parsing — ``label:field.path[:kind]``.

Examples::

    heap:mem.heap_alloc              gauge (default)
    req/s:http.requests_total:counter
    :load.0                          label defaults to the path
"""

from __future__ import annotations

from dataclasses import dataclass

from jsonmon.errors import SpecSyntaxError

GAUGE = "gauge"
COUNTER = "counter"
KINDS = (GAUGE, COUNTER)


@dataclass(frozen=True)
class MetricSpec:
    """One plotted metric: where to find it and how to compute it."""
    label: str
    path: tuple[str, ...]
    kind: str = GAUGE

    @property
    def path_text(self) -> str:
        return ".".join(self.path)

    @property
    def is_counter(self) -> bool:
        return self.kind == COUNTER


def parse_spec(text: str) -> MetricSpec:
    """Parse a single spec string, raising SpecSyntaxError on bad input."""
    parts = text.split(":")
    if len(parts) not in (2, 3):
        raise SpecSyntaxError(text, f"expected label:path[:kind], got {len(parts)} part(s)")

    label, path_text = parts[0], parts[1]
    kind = parts[2] if len(parts) == 3 else GAUGE

    if not path_text:
        raise SpecSyntaxError(text, "empty field path")
    path = tuple(path_text.split("."))
    if any(not seg for seg in path):
        raise SpecSyntaxError(text, "empty segment in field path")
    if kind not in KINDS:
        raise SpecSyntaxError(text, f"unknown kind {kind!r} (expected one of: {', '.join(KINDS)})")

    return MetricSpec(label=label or path_text, path=path, kind=kind)


def parse_specs(texts: list[str]) -> list[MetricSpec]:
    """Parse spec strings in declaration order, which is also plotting order."""
    return [parse_spec(t) for t in texts]
