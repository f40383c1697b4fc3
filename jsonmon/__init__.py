"""jsonmon — graph fields of a JSON feed live in the terminal.

Each data source is a SampleSource subclass registered by name.
Import jsonmon.sources to populate SOURCES.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jsonmon.sources import SampleSource

__version__ = "0.3.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

SOURCES: dict[str, type[SampleSource]] = {}


def register(cls: type[SampleSource]) -> type[SampleSource]:
    """Decorator that adds a source class to the global registry."""
    SOURCES[cls.name] = cls
    return cls
