"""
Broadcast Channel

The single outbound datagram transport shared by every session. Chat lines
and system notices are sent to the broadcast group one datagram per line.
"""

import logging
import socket
import threading
from typing import Optional

from ..protocol import encode_datagram

logger = logging.getLogger(__name__)


class BroadcastChannel:
    """
    Group-addressed sender shared by all sessions.

    Sends are serialized by a lock so concurrent publishers never interleave
    on the socket. Delivery is best effort: failures are logged and never
    retried or raised to the caller.
    """

    def __init__(self, group: str, port: int, ttl: int = 1):
        """
        Initialize the channel.

        Args:
            group: Destination group address (a unicast address also works,
                   which is what the tests use)
            port: Destination port
            ttl: Multicast time-to-live
        """
        self.group = group
        self.port = port
        self.ttl = ttl
        self._lock = threading.Lock()
        self._sock: Optional[socket.socket] = None

    @property
    def is_open(self) -> bool:
        return self._sock is not None

    def open(self) -> None:
        """Create the sending socket."""
        with self._lock:
            if self._sock is not None:
                return
            sock = socket.socket(
                socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP
            )
            sock.setsockopt(
                socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, self.ttl
            )
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
            sock.setblocking(False)
            self._sock = sock
        logger.info(f"Broadcast channel open for {self.group}:{self.port}")

    def publish(self, message: str) -> bool:
        """
        Send one message to the group.

        Args:
            message: The chat line or notice to broadcast

        Returns:
            True if the datagram was handed to the transport
        """
        payload = encode_datagram(message)
        with self._lock:
            if self._sock is None:
                logger.error(
                    f"Broadcast channel closed, dropping message: {message!r}"
                )
                return False
            try:
                self._sock.sendto(payload, (self.group, self.port))
            except OSError as e:
                logger.error(f"Failed to broadcast message: {e}")
                return False

        logger.debug(f"Broadcast {len(payload)} bytes: {message!r}")
        return True

    def close(self) -> None:
        """Close the socket. Safe to call more than once."""
        with self._lock:
            sock, self._sock = self._sock, None
        if sock is not None:
            sock.close()
            logger.info("Broadcast channel closed")
