"""Pixel graph renderer.

Paints every series onto one RGBA canvas with a shared vertical scale.
The output is a plain pixel buffer; turning it into escape codes is the
terminal's job (see jsonmon.terminal).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from jsonmon.series import SeriesPoint

Color = tuple[int, int, int]

# one color per spec, cycled by declaration index
PALETTE: list[Color] = [
    (0x4e, 0xc9, 0xe6),  # cyan
    (0xe6, 0x5c, 0xd1),  # magenta
    (0x6c, 0xd9, 0x5b),  # green
    (0xf2, 0xc9, 0x4c),  # yellow
    (0xf2, 0x5c, 0x54),  # red
    (0x5b, 0x8d, 0xef),  # blue
    (0xf2, 0x9e, 0x4c),  # orange
    (0xe0, 0xe0, 0xe0),  # white
]

EPSILON = 1e-9


@dataclass(frozen=True)
class Image:
    """Row-major RGBA pixels, ``width * height * 4`` bytes."""
    width: int
    height: int
    pixels: bytes

    def pixel(self, x: int, y: int) -> tuple[int, int, int, int]:
        i = (y * self.width + x) * 4
        return tuple(self.pixels[i:i + 4])


def value_range(windows: Sequence[Sequence[SeriesPoint]]) -> tuple[float, float] | None:
    """Shared (min, max) across all series, or None if nothing is buffered.

    A flat range is widened on both sides so flat lines sit mid-height
    instead of dividing by zero. The pad scales with the magnitude, since
    a fixed EPSILON vanishes next to values like 1e8.
    """
    values = [p.value for points in windows for p in points]
    if not values:
        return None
    lo, hi = min(values), max(values)
    if hi - lo < EPSILON:
        pad = max(EPSILON, max(abs(lo), abs(hi)) * EPSILON)
        lo, hi = lo - pad, hi + pad
    return lo, hi


def column_for(slot: int, steps: int, width: int) -> int:
    """Map buffer slot 0..steps-1 onto pixel columns 0..width-1."""
    if steps == 1:
        return width - 1
    return round(slot * (width - 1) / (steps - 1))


def row_for(value: float, lo: float, hi: float, height: int) -> int:
    """Map a value onto rows, larger values nearer row 0."""
    return round((hi - value) / (hi - lo) * (height - 1))


class _Canvas:
    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.buf = bytearray(width * height * 4)

    def stamp(self, x: int, y: int, rgba: bytes, thickness: int) -> None:
        """Paint a thickness × thickness square centred on (x, y), clipped."""
        x0 = max(0, x - (thickness - 1) // 2)
        x1 = min(self.width - 1, x + thickness // 2)
        y0 = max(0, y - (thickness - 1) // 2)
        y1 = min(self.height - 1, y + thickness // 2)
        if x0 > x1:
            return
        run = rgba * (x1 - x0 + 1)
        for yy in range(y0, y1 + 1):
            i = (yy * self.width + x0) * 4
            self.buf[i:i + len(run)] = run

    def line(self, a: tuple[int, int], b: tuple[int, int], rgba: bytes, thickness: int) -> None:
        """Bresenham from a to b, both ends inclusive."""
        x0, y0 = a
        x1, y1 = b
        dx, dy = abs(x1 - x0), -abs(y1 - y0)
        sx = 1 if x0 < x1 else -1
        sy = 1 if y0 < y1 else -1
        err = dx + dy
        while True:
            self.stamp(x0, y0, rgba, thickness)
            if x0 == x1 and y0 == y1:
                return
            e2 = 2 * err
            if e2 >= dy:
                err += dy
                x0 += sx
            if e2 <= dx:
                err += dx
                y0 += sy


def render_graph(windows: Sequence[Sequence[SeriesPoint]], width: int, height: int,
                 steps: int, *, palette: Sequence[Color] = PALETTE,
                 thickness: int = 2) -> Image:
    """Render series windows (oldest → newest, one per spec) into an Image.

    The newest point of every series lands on the rightmost column; a
    series shorter than ``steps`` leaves the left side blank. Output
    depends only on the arguments.
    """
    if width < 1 or height < 1:
        raise ValueError(f"image size must be positive, got {width}x{height}")
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")
    if not palette:
        raise ValueError("palette is empty")

    windows = [list(points)[-steps:] for points in windows]
    canvas = _Canvas(width, height)
    rng = value_range(windows)
    if rng is None:
        return Image(width, height, bytes(canvas.buf))
    lo, hi = rng

    for k, points in enumerate(windows):
        if not points:
            continue
        rgba = bytes(palette[k % len(palette)]) + b"\xff"
        offset = steps - len(points)
        coords = [
            (column_for(offset + i, steps, width), row_for(p.value, lo, hi, height))
            for i, p in enumerate(points)
        ]
        if len(coords) == 1:
            canvas.stamp(*coords[0], rgba, thickness)
            continue
        for a, b in zip(coords, coords[1:]):
            canvas.line(a, b, rgba, thickness)

    return Image(width, height, bytes(canvas.buf))
