"""
Broadcast Listener

Receives the relay's broadcast datagrams and forwards each line to the
display sink. It runs on the event loop next to the server link but does
not depend on it: the link starts it once access is granted and closes it
on teardown.
"""

import asyncio
import ipaddress
import logging
import socket
import struct
from typing import Optional

from ..protocol import decode_datagram
from .display import DisplaySink

logger = logging.getLogger(__name__)


def open_group_socket(group: str, port: int, interface: str) -> socket.socket:
    """
    Create a UDP socket bound to receive traffic for the group.

    For a multicast group the socket binds the wildcard address and joins
    the group on the given interface. For a unicast address it binds that
    address directly.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if hasattr(socket, "SO_REUSEPORT"):
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except OSError:
                pass

        if ipaddress.ip_address(group).is_multicast:
            sock.bind(("", port))
            sock.setsockopt(
                socket.IPPROTO_IP,
                socket.IP_ADD_MEMBERSHIP,
                _membership(group, interface),
            )
        else:
            sock.bind((group, port))

        sock.setblocking(False)
    except OSError:
        sock.close()
        raise
    return sock


def _membership(group: str, interface: str) -> bytes:
    return struct.pack(
        "4s4s", socket.inet_aton(group), socket.inet_aton(interface)
    )


class _BroadcastProtocol(asyncio.DatagramProtocol):
    def __init__(self, sink: DisplaySink, closed: asyncio.Future):
        self.sink = sink
        self.closed = closed

    def datagram_received(self, data: bytes, addr) -> None:
        logger.debug(f"Received {len(data)} bytes from {addr}")
        self.sink.append(decode_datagram(data))

    def error_received(self, exc: Exception) -> None:
        logger.debug(f"Broadcast receive error: {exc}")

    def connection_lost(self, exc: Optional[Exception]) -> None:
        if not self.closed.done():
            self.closed.set_result(None)


class BroadcastListener:
    """
    Forwards broadcast lines to a display sink.

    Attributes:
        group: Group address the listener joins (or unicast address it binds)
        port: Port to receive on; after start() this is the bound port
        interface: Local interface address used for the group membership
    """

    def __init__(
        self,
        sink: DisplaySink,
        group: str,
        port: int,
        interface: str = "0.0.0.0",
    ):
        self.sink = sink
        self.group = group
        self.port = port
        self.interface = interface
        self._sock: Optional[socket.socket] = None
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._closed: Optional[asyncio.Future] = None

    @property
    def is_listening(self) -> bool:
        return self._transport is not None and not self._transport.is_closing()

    async def start(self) -> None:
        """Bind, join the group and start delivering lines to the sink."""
        loop = asyncio.get_running_loop()
        self._sock = open_group_socket(self.group, self.port, self.interface)
        self.port = self._sock.getsockname()[1]
        self._closed = loop.create_future()
        self._transport, _ = await loop.create_datagram_endpoint(
            lambda: _BroadcastProtocol(self.sink, self._closed),
            sock=self._sock,
        )
        logger.info(f"Listening for broadcasts on {self.group}:{self.port}")

    def close(self) -> None:
        """Leave the group and stop listening. Safe to call more than once."""
        if self._transport is None or self._transport.is_closing():
            return
        if ipaddress.ip_address(self.group).is_multicast:
            try:
                self._sock.setsockopt(
                    socket.IPPROTO_IP,
                    socket.IP_DROP_MEMBERSHIP,
                    _membership(self.group, self.interface),
                )
            except OSError as e:
                logger.debug(f"Could not leave group {self.group}: {e}")
        self._transport.close()
        logger.info("Broadcast listener closed")

    async def wait_closed(self) -> None:
        if self._closed is not None:
            await self._closed
