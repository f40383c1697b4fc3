"""Exception types raised by jsonmon."""

from __future__ import annotations


class JsonmonError(Exception):
    """Base class for all jsonmon errors."""


class SpecSyntaxError(JsonmonError, ValueError):
    """A metric spec string could not be parsed."""

    def __init__(self, spec: str, reason: str):
        super().__init__(f"invalid spec {spec!r}: {reason}")
        self.spec = spec
        self.reason = reason


class SourceError(JsonmonError):
    """A data source failed."""


class FetchError(SourceError):
    """One HTTP poll failed. The next tick retries."""


class StreamDecodeError(SourceError):
    """The input stream contained something that is not a JSON object."""


class TerminalError(JsonmonError):
    """The terminal cannot provide a required capability."""
