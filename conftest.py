"""
Shared pytest fixtures.

Lives at the repository root so that `src.relaychat` is importable from
the test modules.
"""

import asyncio
import time

import pytest

from src.relaychat.protocol import encode_frame


class RecordingSink:
    """Display sink that keeps every appended line."""

    def __init__(self):
        self.lines = []

    def append(self, line):
        self.lines.append(line)


class RecordingChannel:
    """Stand-in for BroadcastChannel that records published messages."""

    def __init__(self):
        self.published = []
        self.is_open = False
        self.closed = False

    def open(self):
        self.is_open = True

    def publish(self, message):
        self.published.append(message)
        return True

    def close(self):
        self.is_open = False
        self.closed = True


class MemoryStreamWriter:
    """In-memory StreamWriter replacement for driving sessions."""

    def __init__(self, fail_after=None):
        self.data = bytearray()
        self.closed = False
        self.writes = 0
        self.fail_after = fail_after  # writes allowed before resets start

    def write(self, data):
        if self.fail_after is not None and self.writes >= self.fail_after:
            raise ConnectionResetError("connection reset by peer")
        self.writes += 1
        self.data.extend(data)

    async def drain(self):
        pass

    def close(self):
        self.closed = True

    def is_closing(self):
        return self.closed

    async def wait_closed(self):
        pass

    def get_extra_info(self, name, default=None):
        if name == "peername":
            return ("127.0.0.1", 50000)
        return default


def stream_of(*frames, eof=True, raw=b""):
    """Build a StreamReader pre-loaded with text frames."""
    reader = asyncio.StreamReader()
    for frame in frames:
        reader.feed_data(encode_frame(frame))
    if raw:
        reader.feed_data(raw)
    if eof:
        reader.feed_eof()
    return reader


async def _wait_until(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def memory_writer():
    return MemoryStreamWriter()


@pytest.fixture
def failing_writer():
    return MemoryStreamWriter(fail_after=0)


@pytest.fixture
def make_writer():
    return MemoryStreamWriter


@pytest.fixture
def make_stream():
    return stream_of


@pytest.fixture
def wait_until():
    return _wait_until
