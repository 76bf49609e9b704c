"""
Client Session

Serves one accepted connection: negotiates the client's name, relays its
messages through moderation to the broadcast channel, and cleans up when
the client leaves, is expelled, or drops.

States:
    HANDSHAKE_WAIT -> ACTIVE -> TERMINATING -> CLOSED

Any transport failure jumps straight to CLOSED through the same cleanup
used by a normal logout.
"""

import asyncio
import logging
from enum import Enum

from ..config import DEFAULT_MAX_WARNINGS
from ..errors import TransportFailure, WarningLimitExceeded
from ..protocol import (
    LOGOUT_SENTINEL,
    RESERVED_WORDS,
    TERMINATE_SENTINEL,
    WELCOME_MESSAGE,
    read_frame,
    write_frame,
    write_signal,
)
from .broadcast import BroadcastChannel
from .moderation import ModerationPolicy, Verdict
from .registry import NameRegistry

logger = logging.getLogger(__name__)

JOIN_NOTICE = ">> {name} has joined the chat."
LEAVE_NOTICE = ">> {name} has left the chat."
EXPULSION_NOTICE = (
    ">> {name} has been expelled and blocked for breaking the rules."
)
WARNING_MESSAGE = (
    ">> Your message contains forbidden words. Please follow the chat rules."
)
BLOCK_MESSAGE = (
    ">> Your access to the chat has been blocked for breaking the rules "
    "{count} times."
)


class SessionState(Enum):
    """Lifecycle of a client session."""

    HANDSHAKE_WAIT = "handshake_wait"
    ACTIVE = "active"
    TERMINATING = "terminating"
    CLOSED = "closed"


class ClientSession:
    """
    Protocol state machine for a single client connection.

    The session owns its reader and writer. Shared components are passed in
    explicitly and only touched through their atomic operations.

    Attributes:
        name: Display name, empty until the handshake succeeds
        warning_count: Number of messages rejected by moderation
        blocked: True once the client has been expelled; a blocked session
                 keeps its name in the registry
        state: Current SessionState
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        registry: NameRegistry,
        policy: ModerationPolicy,
        channel: BroadcastChannel,
        max_warnings: int = DEFAULT_MAX_WARNINGS,
    ):
        self.reader = reader
        self.writer = writer
        self.registry = registry
        self.policy = policy
        self.channel = channel
        self.max_warnings = max_warnings

        self.name = ""
        self.warning_count = 0
        self.blocked = False
        self.state = SessionState.HANDSHAKE_WAIT
        self.peer = writer.get_extra_info("peername")

    def __repr__(self) -> str:
        return (
            f"ClientSession(name={self.name!r}, peer={self.peer}, "
            f"state={self.state.value})"
        )

    async def run(self) -> None:
        """Serve the connection until it terminates. Never raises I/O errors."""
        logger.info(f"Client {self.peer} connected, waiting for a name")
        try:
            try:
                await write_frame(self.writer, WELCOME_MESSAGE)
                await self._negotiate_name()
                await self._relay_messages()
            except WarningLimitExceeded as e:
                logger.warning(f"Expelling {e.name}: {e}")
                await self._expel()
        except (TransportFailure, OSError) as e:
            logger.info(f"Client {self.name or self.peer} dropped: {e}")
        finally:
            await self.close()

    async def _negotiate_name(self) -> None:
        while True:
            candidate = await read_frame(self.reader)
            if candidate not in RESERVED_WORDS and self.registry.try_acquire(
                candidate, self
            ):
                break
            logger.info(
                f"Client {self.peer} asked for unavailable name {candidate!r}"
            )
            await write_signal(self.writer, False)

        await write_signal(self.writer, True)
        self.name = candidate
        self.state = SessionState.ACTIVE
        logger.info(f"Name {self.name!r} assigned to client {self.peer}")
        self.channel.publish(JOIN_NOTICE.format(name=self.name))

    async def _relay_messages(self) -> None:
        while self.state is SessionState.ACTIVE:
            message = await read_frame(self.reader)

            if message == LOGOUT_SENTINEL:
                self.state = SessionState.TERMINATING
                await write_frame(self.writer, TERMINATE_SENTINEL)
                logger.info(f"{self.name} logged out")
                return

            if self.policy.evaluate(message) is Verdict.REJECTED:
                await write_frame(self.writer, WARNING_MESSAGE)
                self.warning_count += 1
                logger.warning(
                    f"{self.name} sent a forbidden message "
                    f"({self.warning_count}/{self.max_warnings})"
                )
            else:
                self.channel.publish(f"{self.name}: {message}")

            if self.warning_count >= self.max_warnings:
                self.state = SessionState.TERMINATING
                raise WarningLimitExceeded(self.name, self.warning_count)

    async def _expel(self) -> None:
        self.blocked = True
        self.registry.retain(self)
        self.state = SessionState.TERMINATING
        try:
            await write_frame(
                self.writer, BLOCK_MESSAGE.format(count=self.warning_count)
            )
        finally:
            self.channel.publish(EXPULSION_NOTICE.format(name=self.name))

    async def close(self) -> None:
        """
        Release the session's resources.

        Idempotent: the registry release, the leave notice and the socket
        close happen once regardless of how the session ended.
        """
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED

        if not self.blocked:
            self.registry.release(self)
        if self.name:
            self.channel.publish(LEAVE_NOTICE.format(name=self.name))

        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing connection to {self.peer}: {e}")

        logger.info(f"Client disconnected (name: {self.name!r})")
