"""
Server Link

The client's single TCP connection to the relay. It reads the welcome
line, waits for the relay to accept a name (names are submitted by the
caller through send_to_server), starts the broadcast listener once access
is granted, and then displays the relay's private messages until the
session ends.

States:
    CONNECTING -> AWAITING_WELCOME -> AWAITING_NAME_ACCEPTANCE
    -> ACTIVE -> TERMINATED

Usage:
    link = ServerLink(ClientConfig(), sink, on_access=ui.set_access)
    task = asyncio.create_task(link.run())
    await link.send_to_server("Ana")
"""

import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from ..config import ClientConfig
from ..errors import FrameTooLarge, TransportFailure
from ..protocol import (
    LOGOUT_SENTINEL,
    TERMINATE_SENTINEL,
    read_frame,
    read_signal,
    write_frame,
)
from .display import DisplaySink
from .listener import BroadcastListener

logger = logging.getLogger(__name__)

NAME_UNAVAILABLE = ">> That name is not available. Please choose another one."
ACCESS_GRANTED = ">> Access to the chat granted.\n------------------"
CONNECTION_FINISHED = ">> The connection with the server has finished."
CONNECTION_LOST = ">> The connection with the server was lost."
SEND_FAILED = ">> Error. The message could not be sent."


class LinkState(Enum):
    """Lifecycle of the client's connection to the relay."""

    CONNECTING = "connecting"
    AWAITING_WELCOME = "awaiting_welcome"
    AWAITING_NAME_ACCEPTANCE = "awaiting_name_acceptance"
    ACTIVE = "active"
    TERMINATED = "terminated"


def _default_listener_factory(
    config: ClientConfig, sink: DisplaySink
) -> BroadcastListener:
    return BroadcastListener(
        sink, config.group, config.group_port, config.interface
    )


class ServerLink:
    """
    Client-side session with the relay.

    Attributes:
        config: Relay and broadcast addresses
        sink: Where every line for the user is appended
        state: Current LinkState
        listener: The broadcast listener, once access has been granted
    """

    def __init__(
        self,
        config: ClientConfig,
        sink: DisplaySink,
        on_access: Optional[Callable[[bool], None]] = None,
        listener_factory: Optional[
            Callable[[ClientConfig, DisplaySink], BroadcastListener]
        ] = None,
    ):
        """
        Initialize the link.

        Args:
            config: Client settings
            sink: Display sink for relay and broadcast lines
            on_access: Called with True when the relay accepts the name and
                       with False when the session ends after that
            listener_factory: Optional factory for the broadcast listener
                              (for dependency injection/testing)
        """
        self.config = config
        self.sink = sink
        self.state = LinkState.CONNECTING
        self.listener: Optional[BroadcastListener] = None
        self._on_access = on_access
        self._listener_factory = listener_factory or _default_listener_factory
        self._reader: Optional[asyncio.StreamReader] = None
        self._writer: Optional[asyncio.StreamWriter] = None
        self._access_granted = False

    @property
    def is_connected(self) -> bool:
        """Check whether the connection to the relay is open."""
        return (
            self._writer is not None
            and not self._writer.is_closing()
            and self.state is not LinkState.TERMINATED
        )

    @property
    def has_access(self) -> bool:
        return self._access_granted

    async def run(self) -> None:
        """Drive the link from connection to termination."""
        try:
            logger.info(
                f"Connecting to {self.config.host}:{self.config.port}..."
            )
            self._reader, self._writer = await asyncio.open_connection(
                self.config.host, self.config.port
            )

            self.state = LinkState.AWAITING_WELCOME
            self.sink.append(await read_frame(self._reader))

            self.state = LinkState.AWAITING_NAME_ACCEPTANCE
            while not await read_signal(self._reader):
                self.sink.append(NAME_UNAVAILABLE)

            await self._grant_access()
            self.state = LinkState.ACTIVE

            while True:
                message = await read_frame(self._reader)
                if message == TERMINATE_SENTINEL:
                    break
                self.sink.append(message)

            self._revoke_access()
            self.sink.append(CONNECTION_FINISHED)
            logger.info("Session finished by the relay")

        except (TransportFailure, OSError) as e:
            logger.warning(f"Lost connection to relay: {e}")
            self._revoke_access()
            self.sink.append(CONNECTION_LOST)
        finally:
            self.state = LinkState.TERMINATED
            await self._release()

    async def send_to_server(self, text: str) -> bool:
        """
        Send a name candidate or chat message to the relay.

        Failures are reported to the sink instead of being raised.

        Returns:
            True if the frame was written
        """
        if not self.is_connected:
            self.sink.append(SEND_FAILED)
            return False
        try:
            await write_frame(self._writer, text)
            return True
        except (OSError, FrameTooLarge) as e:
            logger.error(f"Failed to send message: {e}")
            self.sink.append(SEND_FAILED)
            return False

    async def logout(self) -> bool:
        """Ask the relay to end the session."""
        return await self.send_to_server(LOGOUT_SENTINEL)

    async def _grant_access(self) -> None:
        self.listener = self._listener_factory(self.config, self.sink)
        await self.listener.start()
        self._access_granted = True
        if self._on_access:
            self._on_access(True)
        self.sink.append(ACCESS_GRANTED)

    def _revoke_access(self) -> None:
        if not self._access_granted:
            return
        self._access_granted = False
        if self._on_access:
            self._on_access(False)

    async def _release(self) -> None:
        if self.listener:
            self.listener.close()
        if self._writer:
            self._writer.close()
            try:
                await self._writer.wait_closed()
            except OSError as e:
                logger.debug(f"Error closing relay connection: {e}")
