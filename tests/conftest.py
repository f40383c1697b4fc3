"""Shared fakes for the terminal and HTTP layers."""

from __future__ import annotations

import pytest
import requests

from jsonmon.terminal import TermSize


class FakeTerminal:
    """Records every call instead of writing escape codes."""

    def __init__(self, size: TermSize | None = None):
        self._size = size or TermSize(columns=80, rows=24, width=800, height=480)
        self.calls: list[tuple] = []
        self.images = []
        self.texts: list[str] = []

    def size(self) -> TermSize:
        return self._size

    def write_image(self, image) -> None:
        self.calls.append(("write_image", image.width, image.height))
        self.images.append(image)

    def write_text(self, text: str) -> None:
        self.calls.append(("write_text",))
        self.texts.append(text)

    def move_cursor(self, direction: str, n: int) -> None:
        self.calls.append(("move_cursor", direction, n))

    def __getattr__(self, name):
        if name in ("save_cursor", "restore_cursor", "clear_scrollback",
                    "hide_cursor", "show_cursor"):
            return lambda: self.calls.append((name,))
        raise AttributeError(name)

    def names(self) -> list[str]:
        return [c[0] for c in self.calls]


class FakeResponse:
    def __init__(self, body=None, status: int = 200, raw: str | None = None):
        self._body = body
        self._raw = raw
        self.status_code = status

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._raw is not None:
            raise requests.JSONDecodeError("Expecting value", self._raw, 0)
        return self._body


class FakeSession:
    """Replays a script of responses; an exception in the script is raised."""

    def __init__(self, script):
        self._script = list(script)
        self.requests: list[tuple[str, float]] = []
        self.closed = False

    def get(self, url, timeout=None):
        self.requests.append((url, timeout))
        item = self._script.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_term() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def make_session():
    return FakeSession
