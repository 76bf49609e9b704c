"""
Wire Protocol

Codec for the relay's TCP conversation and for broadcast datagrams.

TCP (per connection):
    - framed text: 2-byte big-endian unsigned length + N bytes of UTF-8
    - signals: a single byte, 0x00 is False and anything else is True

Conversation order:
    1. relay -> client: welcome frame
    2. client -> relay: name candidate frame (repeatable)
    3. relay -> client: one signal per candidate (False = try again)
    4. either direction: text frames until a sentinel ends the session

Broadcast datagrams carry one plain UTF-8 line each, bounded to
MAX_DATAGRAM_SIZE bytes on the receiving side.
"""

import asyncio
import codecs
import struct

from .errors import FrameTooLarge, ProtocolError, TransportFailure

LOGOUT_SENTINEL = "!salir"  # client -> relay
TERMINATE_SENTINEL = "!TERMINAR_SESION"  # relay -> client
RESERVED_WORDS = frozenset({LOGOUT_SENTINEL, TERMINATE_SENTINEL})

WELCOME_MESSAGE = "Welcome to the chat. Please enter your name."

MAX_FRAME_SIZE = 0xFFFF
MAX_DATAGRAM_SIZE = 256

LENGTH_STRUCT = struct.Struct(">H")

_TRUE = b"\x01"
_FALSE = b"\x00"


async def _read_exactly(reader: asyncio.StreamReader, n: int) -> bytes:
    try:
        return await reader.readexactly(n)
    except asyncio.IncompleteReadError as e:
        raise TransportFailure(
            f"Connection closed after {len(e.partial)} of {n} bytes"
        ) from e


async def read_frame(reader: asyncio.StreamReader) -> str:
    """
    Read one length-prefixed text frame.

    Raises:
        TransportFailure: if the stream ends before the frame is complete
        ProtocolError: if the payload is not valid UTF-8
    """
    (length,) = LENGTH_STRUCT.unpack(await _read_exactly(reader, 2))
    payload = await _read_exactly(reader, length)
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ProtocolError(f"Invalid UTF-8 frame: {e}") from e


def encode_frame(text: str) -> bytes:
    """Encode text as a length-prefixed frame."""
    payload = text.encode("utf-8")
    if len(payload) > MAX_FRAME_SIZE:
        raise FrameTooLarge(
            f"Frame too large: {len(payload)} > {MAX_FRAME_SIZE}"
        )
    return LENGTH_STRUCT.pack(len(payload)) + payload


async def write_frame(writer: asyncio.StreamWriter, text: str) -> None:
    """Write one text frame and wait for the transport to flush."""
    writer.write(encode_frame(text))
    await writer.drain()


async def read_signal(reader: asyncio.StreamReader) -> bool:
    """Read a one-byte boolean signal."""
    return await _read_exactly(reader, 1) != _FALSE


async def write_signal(writer: asyncio.StreamWriter, value: bool) -> None:
    """Write a one-byte boolean signal."""
    writer.write(_TRUE if value else _FALSE)
    await writer.drain()


def encode_datagram(text: str) -> bytes:
    return text.encode("utf-8")


def decode_datagram(data: bytes) -> str:
    """
    Decode a received broadcast payload.

    The payload is cut to MAX_DATAGRAM_SIZE bytes first. A multi-byte
    character split by the cut is dropped; invalid bytes elsewhere become
    U+FFFD.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    return decoder.decode(data[:MAX_DATAGRAM_SIZE], final=False)
