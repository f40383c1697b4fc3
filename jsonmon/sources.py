"""Sample sources — where decoded JSON objects come from.

Both variants are lazy, non-restartable iterables of RawSample:

    with open_source(url, interval=1.0) as src:
        for sample in src:
            dash.ingest(sample)

close() may be called from another thread. It stops an HTTP source
promptly; a stream source stops at its next read.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any, TextIO

import requests

from jsonmon import SOURCES, register
from jsonmon.errors import FetchError, StreamDecodeError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawSample:
    """One decoded JSON object and the wall-clock time it was obtained."""
    data: dict[str, Any]
    timestamp: float


class SampleSource(ABC):
    """Abstract base for all sources.

    Subclasses implement: name, _samples().
    """

    name: str = ""

    def __init__(self) -> None:
        self._closed = threading.Event()
        self._started = False

    def __iter__(self) -> Iterator[RawSample]:
        if self._started:
            raise RuntimeError(f"{self.name} source can only be iterated once")
        self._started = True
        return self._samples()

    @abstractmethod
    def _samples(self) -> Iterator[RawSample]:
        """Yield samples until closed or the underlying source ends."""

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def close(self) -> None:
        """Release resources. Override to close handles, then call super()."""
        self._closed.set()

    def __enter__(self) -> SampleSource:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


# ---- HTTP polling ----

@register
class HTTPPollSource(SampleSource):
    """GET ``url`` every ``interval`` seconds and decode one object per tick.

    A failed tick (network error, bad status, bad body) is reported through
    ``on_error`` and skipped; the next tick tries again.
    """

    name = "http"

    def __init__(self, url: str, interval: float = 1.0, *,
                 timeout: float | None = None,
                 session: requests.Session | None = None,
                 on_error: Callable[[FetchError], None] | None = None):
        super().__init__()
        self.url = url
        self.interval = interval
        self.timeout = timeout if timeout is not None else interval
        self.on_error = on_error
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    def fetch(self) -> RawSample:
        """Issue one GET and decode the body, raising FetchError on failure."""
        try:
            resp = self._session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise FetchError(f"GET {self.url}: {exc}") from exc
        if not isinstance(data, dict):
            raise FetchError(f"GET {self.url}: expected a JSON object, got {type(data).__name__}")
        return RawSample(data, time.time())

    def _samples(self) -> Iterator[RawSample]:
        next_tick = time.monotonic()
        while not self.closed:
            try:
                sample = self.fetch()
            except FetchError as exc:
                log.debug("poll failed: %s", exc)
                if self.on_error:
                    self.on_error(exc)
            else:
                yield sample

            next_tick += self.interval
            if self._closed.wait(max(0.0, next_tick - time.monotonic())):
                break

    def close(self) -> None:
        super().close()
        if self._owns_session:
            self._session.close()


# ---- continuous stream ----

class ObjectFramer:
    """Split a character stream into top-level JSON object texts.

    Tracks brace depth outside of strings; whitespace between objects is
    skipped. Anything else at depth 0 is a framing error.
    """

    def __init__(self) -> None:
        self._buf: list[str] = []
        self._depth = 0
        self._in_str = False
        self._escape = False

    @property
    def pending(self) -> bool:
        """True while an object has been started but not closed."""
        return bool(self._buf)

    def feed(self, text: str) -> Iterator[str]:
        for ch in text:
            if self._depth == 0:
                if ch.isspace():
                    continue
                if ch != "{":
                    raise StreamDecodeError(f"expected a JSON object, got {ch!r}")
            self._buf.append(ch)

            if self._in_str:
                if self._escape:
                    self._escape = False
                elif ch == "\\":
                    self._escape = True
                elif ch == '"':
                    self._in_str = False
                continue

            if ch == '"':
                self._in_str = True
            elif ch in "{[":
                self._depth += 1
            elif ch in "}]":
                self._depth -= 1
                if self._depth == 0:
                    obj, self._buf = "".join(self._buf), []
                    yield obj


@register
class StreamSource(SampleSource):
    """Decode JSON objects from a text stream as fast as they arrive.

    Objects may be on one line each or pretty-printed over several.
    A malformed object ends the source with StreamDecodeError.
    """

    name = "stream"

    def __init__(self, stream: TextIO, *, owns_stream: bool = False):
        super().__init__()
        self._stream = stream
        self._owns_stream = owns_stream

    def _samples(self) -> Iterator[RawSample]:
        framer = ObjectFramer()
        while not self.closed:
            line = self._stream.readline()
            if not line:
                if framer.pending:
                    raise StreamDecodeError("unexpected end of input inside a JSON object")
                return
            for text in framer.feed(line):
                yield RawSample(self._decode(text), time.time())
                if self.closed:
                    return

    @staticmethod
    def _decode(text: str) -> dict[str, Any]:
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise StreamDecodeError(f"malformed JSON object: {exc}") from exc

    def close(self) -> None:
        """Stop after the sample in hand.

        A readline() already blocked on the stream is not interrupted; the
        loop notices on the next line or end-of-input. The CLI reads on a
        daemon thread, so a silent stdin does not hold up process exit.
        """
        super().close()
        if self._owns_stream:
            self._stream.close()


def open_source(url: str = "", *, interval: float = 1.0,
                timeout: float | None = None,
                stream: TextIO | None = None) -> SampleSource:
    """Poll ``url`` if given, otherwise read objects from ``stream`` (stdin)."""
    if url:
        return SOURCES["http"](url, interval, timeout=timeout)
    return SOURCES["stream"](stream if stream is not None else sys.stdin)
