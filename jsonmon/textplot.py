"""Braille fallback renderer for terminals without inline images.

Draws the same windows as jsonmon.render, through plotext, sized in
character cells instead of pixels.
"""

from __future__ import annotations

from collections.abc import Sequence

import plotext as plt

from jsonmon.render import value_range
from jsonmon.series import SeriesPoint

# same order as render.PALETTE
COLORS = ["cyan", "magenta", "green", "yellow", "red", "blue", "orange", "white"]


def render_text(windows: Sequence[Sequence[SeriesPoint]], labels: Sequence[str],
                columns: int, rows: int, steps: int, *,
                legend: bool = True, frame: bool = False) -> str:
    """Return the chart as a string of ``rows`` lines or fewer."""
    plt.clf()
    plt.theme("clear")
    plt.plotsize(columns, rows)

    windows = [list(points)[-steps:] for points in windows]
    xs = list(range(steps))
    plotted = 0
    for k, (points, label) in enumerate(zip(windows, labels)):
        if not points:
            continue
        offset = steps - len(points)
        plt.plot(xs[offset:], [p.value for p in points],
                 label=label if legend else "",
                 color=COLORS[k % len(COLORS)], marker="braille")
        plotted += 1

    if not plotted:
        return ""

    lo, hi = value_range(windows)
    if hi - lo < 1e-6:
        # plotext needs a visible span
        lo, hi = lo - 1.0, hi + 1.0

    plt.frame(frame)
    plt.xticks([])
    plt.yticks([])
    plt.xlim(0, max(1, steps - 1))
    plt.ylim(lo, hi)
    plt.grid(False, False)
    return plt.build().rstrip()
