"""
Connection Acceptor

Listens on the relay port and starts one ClientSession per accepted
connection. Each connection is served in its own asyncio task, so a
session that blocks or fails never holds up the accept loop or any
other session.
"""

import asyncio
import logging
from typing import List, Optional

from ..config import DEFAULT_MAX_WARNINGS
from .broadcast import BroadcastChannel
from .moderation import ModerationPolicy
from .registry import NameRegistry, normalize_name
from .session import ClientSession

logger = logging.getLogger(__name__)

SHUTDOWN_POLL_INTERVAL = 0.2  # seconds between listener liveness checks


class ConnectionAcceptor:
    """
    Accept loop for the relay.

    The acceptor owns the listening server and the broadcast channel and
    releases both when it is stopped. Sessions already running keep their
    own connections.
    """

    def __init__(
        self,
        host: str,
        port: int,
        registry: NameRegistry,
        policy: ModerationPolicy,
        channel: BroadcastChannel,
        max_warnings: int = DEFAULT_MAX_WARNINGS,
    ):
        """
        Initialize the acceptor.

        Args:
            host: Host address to bind to
            port: Port to listen on (0 picks an ephemeral port)
            registry: Shared name registry
            policy: Shared moderation policy
            channel: Shared broadcast channel
            max_warnings: Rejected messages allowed before blocking a client
        """
        self.host = host
        self.requested_port = port
        self.registry = registry
        self.policy = policy
        self.channel = channel
        self.max_warnings = max_warnings
        self.sessions: List[ClientSession] = []
        self.server: Optional[asyncio.AbstractServer] = None
        self._shutdown = asyncio.Event()

    @property
    def port(self) -> int:
        """The bound port, or the requested one before start()."""
        if self.server and self.server.sockets:
            return self.server.sockets[0].getsockname()[1]
        return self.requested_port

    @property
    def is_serving(self) -> bool:
        return self.server is not None and self.server.is_serving()

    async def start(self) -> None:
        """Open the broadcast channel and start accepting connections."""
        self.channel.open()
        self.server = await asyncio.start_server(
            self.handle_connection, self.host, self.requested_port
        )
        logger.info(f"Relay listening on {self.host}:{self.port}")

    def stop(self) -> None:
        """Close the listening socket; serve_forever() then returns."""
        if self.server:
            self.server.close()
        self._shutdown.set()

    async def serve_forever(self) -> None:
        """
        Accept connections until the listener closes, then release resources.

        The listener normally closes through stop(), but the loop also ends
        if the server is closed any other way.
        """
        if self.server is None:
            await self.start()
        try:
            while self.server.is_serving() and not self._shutdown.is_set():
                try:
                    await asyncio.wait_for(
                        self._shutdown.wait(), timeout=SHUTDOWN_POLL_INTERVAL
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            if self.server:
                self.server.close()
            self.channel.close()
            logger.info("Relay service finished")

    async def handle_connection(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        """Run a session for one accepted connection."""
        session = ClientSession(
            reader,
            writer,
            self.registry,
            self.policy,
            self.channel,
            max_warnings=self.max_warnings,
        )
        self.sessions.append(session)
        try:
            await session.run()
        finally:
            self.sessions.remove(session)
            logger.info(f"Active users: {self.registry.list_active()}")

    def find_session(self, name: str) -> Optional[ClientSession]:
        """Return the live session holding a name, compared case-insensitively."""
        key = normalize_name(name)
        for session in self.sessions:
            if session.name and normalize_name(session.name) == key:
                return session
        return None
