"""jsonmon command line — graph JSON fields from a URL or stdin.

    curl -s localhost:8080/debug/vars | jsonmon heap:memstats.HeapAlloc
    jsonmon --url http://localhost:8080/debug/vars \\
        heap:memstats.HeapAlloc gc/s:memstats.NumGC:counter

Two loops run side by side: a daemon thread pulls samples from the source
into the Dashboard, and the main thread repaints on a fixed timer.
"""

from __future__ import annotations

import argparse
import logging
import os
import re
import signal
import sys
import threading
import time
from typing import NoReturn

from jsonmon import __version__
from jsonmon.dashboard import Dashboard
from jsonmon.errors import JsonmonError, SourceError, SpecSyntaxError, TerminalError
from jsonmon.sources import SampleSource, open_source
from jsonmon.spec import parse_specs
from jsonmon.terminal import DOWN, UP, TerminalSurface, check_image_support

log = logging.getLogger(__name__)

RENDER_INTERVAL_S = 1.0
CLEAR_SCROLLBACK_EVERY = 120   # render ticks

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d*)?|\.\d+)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(text: str) -> float:
    """Parse ``500ms``, ``2s``, ``1m`` or bare seconds into seconds."""
    match = _DURATION_RE.match(text)
    if not match:
        raise argparse.ArgumentTypeError(f"invalid duration: {text!r}")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit or "s"]


class App:
    """Runs the ingestion thread and the render loop until the source ends
    or the user interrupts."""

    def __init__(self, dash: Dashboard, source: SampleSource, term: TerminalSurface, *,
                 rows: int = 0, text: bool = False, legend: bool = True,
                 refresh: float = RENDER_INTERVAL_S):
        self.dash = dash
        self.source = source
        self.term = term
        self.rows = rows
        self.text = text
        self.legend = legend
        self.refresh = refresh
        self.ticks = 0
        self.error: Exception | None = None
        self._done = threading.Event()

    # ---- ingestion ----

    def _ingest(self) -> None:
        try:
            for sample in self.source:
                self.dash.ingest(sample)
        except SourceError as exc:
            log.debug("source failed: %s", exc)
            self.error = exc
        except Exception as exc:
            log.exception("ingestion stopped")
            self.error = exc
        finally:
            self._done.set()

    # ---- terminal ----

    def _screen_rows(self) -> int:
        return self.rows or self.term.size().rows

    def prepare(self) -> None:
        """Hide the cursor and reserve the lines the graph will occupy."""
        self.term.hide_cursor()
        rows = self._screen_rows()
        self.term.write_text("\n" * rows)
        self.term.move_cursor(UP, rows)

    def cleanup(self) -> None:
        self.term.show_cursor()
        self.term.move_cursor(DOWN, self._screen_rows())
        self.term.write_text("\n")

    def render_frame(self) -> None:
        size = self.term.size()
        self.term.save_cursor()
        try:
            if self.text:
                rows = self.rows or size.rows
                self.term.write_text(
                    self.dash.render_text(size.columns, max(1, rows - 1), legend=self.legend))
            else:
                if not size.width or not size.height:
                    raise TerminalError("terminal did not report its pixel size")
                height = size.height
                if self.rows:
                    height = size.height // size.rows * self.rows
                self.term.write_image(self.dash.render(size.width, height))
        finally:
            self.term.restore_cursor()

    def tick(self) -> None:
        self.ticks += 1
        if self.ticks % CLEAR_SCROLLBACK_EVERY == 0:
            # keep the terminal from hoarding every frame we ever drew
            self.term.clear_scrollback()
        self.render_frame()

    # ---- main loop ----

    def _loop(self) -> None:
        next_tick = time.monotonic()
        while True:
            next_tick += self.refresh
            if self._done.wait(max(0.0, next_tick - time.monotonic())):
                return
            self.tick()

    def run(self) -> int:
        """Blocking. Returns 0, or raises whatever stopped ingestion after cleanup."""
        worker = threading.Thread(target=self._ingest, name="jsonmon-ingest", daemon=True)
        worker.start()

        self.prepare()
        try:
            try:
                self._loop()
            except KeyboardInterrupt:
                log.debug("interrupted")
            self.render_frame()
        finally:
            try:
                self.cleanup()
            finally:
                self.source.close()

        if self.error is not None:
            raise self.error
        return 0


# ---- process entry ----

def _on_sigterm(signum, frame):
    raise KeyboardInterrupt


def fatal(*parts: object) -> NoReturn:
    print("jsonmon:", *parts, file=sys.stderr)
    sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jsonmon",
        description="Graph fields of a JSON feed live in the terminal.",
        epilog="Spec format: label:field.path[:kind] where kind is gauge (default) or counter.",
    )
    parser.add_argument("specs", nargs="+", metavar="SPEC",
                        help="Metric to plot, e.g. heap:mem.heap or req/s:http.requests:counter")
    parser.add_argument("--url", default=os.environ.get("JSONMON_URL", ""),
                        help="URL to fetch every interval; read JSON objects from stdin if empty "
                             "(default: $JSONMON_URL)")
    parser.add_argument("--interval", type=parse_duration, default=1.0,
                        help="Time between fetches when --url is set (default: 1s)")
    parser.add_argument("--timeout", type=parse_duration, default=None,
                        help="HTTP request timeout (default: the interval)")
    parser.add_argument("--refresh", type=parse_duration, default=RENDER_INTERVAL_S,
                        help="Time between redraws (default: 1s)")
    parser.add_argument("--steps", type=int, default=100,
                        help="Number of values to plot (default: 100)")
    parser.add_argument("--rows", type=int, default=0,
                        help="Limit the height of the graph, in terminal rows (default: full height)")
    parser.add_argument("--text", action="store_true",
                        help="Draw with braille characters instead of inline images")
    parser.add_argument("--no-legend", action="store_true",
                        help="Hide the legend labels (text mode)")
    parser.add_argument("--log-file", default=None,
                        help="Write debug logs to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.log_file:
        logging.basicConfig(
            filename=args.log_file,
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        specs = parse_specs(args.specs)
    except SpecSyntaxError as exc:
        fatal("Cannot parse spec:", exc)

    term = TerminalSurface()
    try:
        if not args.text:
            check_image_support()
        term.size()
    except TerminalError as exc:
        fatal(exc)

    interval = max(0.01, args.interval)
    refresh = max(0.01, args.refresh)
    steps = max(1, args.steps)
    rows = max(0, args.rows)

    source = open_source(args.url, interval=interval, timeout=args.timeout)
    dash = Dashboard(specs, steps)
    app = App(dash, source, term, rows=rows, text=args.text,
              legend=not args.no_legend, refresh=refresh)
    log.debug("starting: source=%s steps=%d specs=%s", source.name, steps,
              [s.label for s in specs])

    signal.signal(signal.SIGTERM, _on_sigterm)
    try:
        return app.run()
    except SourceError as exc:
        fatal("Data source error:", exc)
    except JsonmonError as exc:
        fatal(exc)
    except Exception as exc:
        fatal("Ingestion error:", exc)
