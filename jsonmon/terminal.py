"""Terminal surface — geometry, cursor control, and inline images.

Images go out with the iTerm2 inline-image protocol (OSC 1337 File=)
as base64 PNG.
"""

from __future__ import annotations

import base64
import fcntl
import io
import os
import struct
import sys
import termios
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TextIO

import matplotlib.image
import numpy as np

from jsonmon.errors import TerminalError
from jsonmon.render import Image

UP = "A"
DOWN = "B"

ESC = "\033"
BEL = "\a"


@dataclass(frozen=True)
class TermSize:
    columns: int
    rows: int
    width: int    # pixels
    height: int   # pixels


def check_image_support(environ: Mapping[str, str] = os.environ) -> None:
    """Raise TerminalError unless inline images will reach the screen."""
    if environ.get("TERM_PROGRAM") != "iTerm.app":
        raise TerminalError("iTerm2 required for inline images (try --text)")
    if environ.get("TERM", "").startswith("screen") or "TMUX" in environ:
        raise TerminalError("screen and tmux not supported (try --text)")


def encode_png(image: Image) -> bytes:
    """Encode RGBA pixels as a PNG file."""
    arr = np.frombuffer(image.pixels, dtype=np.uint8).reshape(image.height, image.width, 4)
    buf = io.BytesIO()
    matplotlib.image.imsave(buf, arr, format="png")
    return buf.getvalue()


class TerminalSurface:
    """Thin wrapper over escape codes written to ``out``."""

    def __init__(self, out: TextIO | None = None):
        self.out = out if out is not None else sys.stdout

    def _write(self, s: str) -> None:
        self.out.write(s)
        self.out.flush()

    def size(self) -> TermSize:
        """Query rows/columns and pixel size from the tty."""
        packed = struct.pack("HHHH", 0, 0, 0, 0)
        try:
            fd = self.out.fileno()
            result = fcntl.ioctl(fd, termios.TIOCGWINSZ, packed)
        except (OSError, ValueError):
            # stdout redirected: ask the controlling terminal
            try:
                with open("/dev/tty") as tty:
                    result = fcntl.ioctl(tty.fileno(), termios.TIOCGWINSZ, packed)
            except OSError as exc:
                raise TerminalError(f"cannot get window size: {exc}") from exc
        rows, columns, width, height = struct.unpack("HHHH", result)
        if not rows or not columns:
            raise TerminalError("cannot get window size: terminal reported 0x0")
        return TermSize(columns=columns, rows=rows, width=width, height=height)

    def write_image(self, image: Image) -> None:
        png = encode_png(image)
        payload = base64.b64encode(png).decode("ascii")
        self._write(
            f"{ESC}]1337;File=inline=1;size={len(png)};"
            f"width={image.width}px;height={image.height}px;"
            f"preserveAspectRatio=0:{payload}{BEL}"
        )

    def write_text(self, text: str) -> None:
        self._write(text + f"{ESC}[J")

    def save_cursor(self) -> None:
        self._write(f"{ESC}7")

    def restore_cursor(self) -> None:
        self._write(f"{ESC}8")

    def clear_scrollback(self) -> None:
        self._write(f"{ESC}]1337;ClearScrollback{BEL}")

    def hide_cursor(self) -> None:
        self._write(f"{ESC}[?25l")

    def show_cursor(self) -> None:
        self._write(f"{ESC}[?25h")

    def move_cursor(self, direction: str, n: int) -> None:
        if n > 0:
            self._write(f"{ESC}[{n}{direction}")
