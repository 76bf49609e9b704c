"""
Display Sink

The narrow output interface the client core writes to. The core only ever
appends whole lines; how they are shown is up to the implementation.
"""

from typing import Protocol

from textual.widgets import Log


class DisplaySink(Protocol):
    """Anything that can append a line of text for the user."""

    def append(self, line: str) -> None: ...


class TextualSink:
    """Sink that writes lines to a Textual Log widget."""

    def __init__(self, log: Log):
        self._log = log

    def append(self, line: str) -> None:
        self._log.write_line(line)
