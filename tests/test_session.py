"""
Tests for the Client Session State Machine

Sessions are driven with a pre-loaded StreamReader and an in-memory
writer; the bytes written back are parsed with the protocol codec.
"""

import pytest

from src.relaychat.protocol import (
    TERMINATE_SENTINEL,
    WELCOME_MESSAGE,
    read_frame,
    read_signal,
)
from src.relaychat.errors import TransportFailure
from src.relaychat.server import (
    ClientSession,
    ModerationPolicy,
    NameRegistry,
    SessionState,
)
from src.relaychat.server.session import (
    BLOCK_MESSAGE,
    EXPULSION_NOTICE,
    JOIN_NOTICE,
    LEAVE_NOTICE,
    WARNING_MESSAGE,
)


@pytest.fixture
def registry():
    return NameRegistry()


@pytest.fixture
def make_session(registry, channel, memory_writer):
    def _make(reader, writer=None):
        return ClientSession(
            reader,
            writer or memory_writer,
            registry,
            ModerationPolicy(),
            channel,
        )

    return _make


def _replies(make_stream, writer):
    """Reader over everything the session wrote."""
    return make_stream(raw=bytes(writer.data))


@pytest.mark.asyncio
async def test_handshake_and_logout(
    make_session, make_stream, memory_writer, channel, registry
):
    """Test the happy path: name accepted, then logout."""
    session = make_session(make_stream("Ana", "!salir"))

    await session.run()

    replies = _replies(make_stream, memory_writer)
    assert await read_frame(replies) == WELCOME_MESSAGE
    assert await read_signal(replies) is True
    assert await read_frame(replies) == TERMINATE_SENTINEL
    with pytest.raises(TransportFailure):
        await read_frame(replies)

    assert channel.published == [
        JOIN_NOTICE.format(name="Ana"),
        LEAVE_NOTICE.format(name="Ana"),
    ]
    assert session.name == "Ana"
    assert session.state is SessionState.CLOSED
    assert "Ana" not in registry
    assert memory_writer.closed


@pytest.mark.asyncio
async def test_logout_ends_reading(
    make_session, make_stream, memory_writer, channel
):
    """Test that frames after logout are never processed."""
    session = make_session(make_stream("Ana", "!salir", "!salir", "hello"))

    await session.run()

    replies = _replies(make_stream, memory_writer)
    await read_frame(replies)
    await read_signal(replies)
    assert await read_frame(replies) == TERMINATE_SENTINEL
    with pytest.raises(TransportFailure):
        await read_frame(replies)
    assert channel.published.count(LEAVE_NOTICE.format(name="Ana")) == 1
    assert "Ana: hello" not in channel.published


@pytest.mark.asyncio
async def test_unavailable_names_are_rejected_until_one_is_free(
    make_session, make_stream, memory_writer, registry
):
    """Test the handshake loop for taken, blank and reserved names."""
    registry.try_acquire("ana", object())
    session = make_session(
        make_stream("ANA", "", "!salir", "!TERMINAR_SESION", "Bob", "!salir")
    )

    await session.run()

    replies = _replies(make_stream, memory_writer)
    assert await read_frame(replies) == WELCOME_MESSAGE
    signals = [await read_signal(replies) for _ in range(5)]
    assert signals == [False, False, False, False, True]
    assert await read_frame(replies) == TERMINATE_SENTINEL
    assert session.name == "Bob"


@pytest.mark.asyncio
async def test_allowed_message_is_broadcast_verbatim(
    make_session, make_stream, channel
):
    session = make_session(
        make_stream("Ana", "hello world", "  spaced  ", "!salir")
    )

    await session.run()

    assert "Ana: hello world" in channel.published
    assert "Ana:   spaced  " in channel.published


@pytest.mark.asyncio
async def test_forbidden_message_is_warned_privately(
    make_session, make_stream, memory_writer, channel, registry
):
    """Test that rejected messages are never broadcast."""
    session = make_session(make_stream("Ana", "I love PEPSI", "!salir"))

    await session.run()

    replies = _replies(make_stream, memory_writer)
    await read_frame(replies)
    await read_signal(replies)
    assert await read_frame(replies) == WARNING_MESSAGE
    assert await read_frame(replies) == TERMINATE_SENTINEL

    assert not any("PEPSI" in line for line in channel.published)
    assert session.warning_count == 1
    assert session.blocked is False
    assert "Ana" not in registry


@pytest.mark.asyncio
async def test_two_warnings_do_not_block(make_session, make_stream, channel):
    session = make_session(make_stream("Ana", "pepsi", "bimbo", "hi", "!salir"))

    await session.run()

    assert session.warning_count == 2
    assert session.blocked is False
    assert "Ana: hi" in channel.published
    assert EXPULSION_NOTICE.format(name="Ana") not in channel.published


@pytest.mark.asyncio
async def test_third_warning_blocks_and_expels(
    make_session, make_stream, memory_writer, channel, registry
):
    """Test that the third rejected message expels the client."""
    session = make_session(
        make_stream("Ana", "pepsi", "Danone", "hi", "NESTLE", "still here")
    )

    await session.run()

    replies = _replies(make_stream, memory_writer)
    await read_frame(replies)
    await read_signal(replies)
    for _ in range(3):
        assert await read_frame(replies) == WARNING_MESSAGE
    assert await read_frame(replies) == BLOCK_MESSAGE.format(count=3)
    with pytest.raises(TransportFailure):
        await read_frame(replies)

    assert channel.published == [
        JOIN_NOTICE.format(name="Ana"),
        "Ana: hi",
        EXPULSION_NOTICE.format(name="Ana"),
        LEAVE_NOTICE.format(name="Ana"),
    ]
    assert session.blocked is True
    assert session.state is SessionState.CLOSED


@pytest.mark.asyncio
async def test_blocked_name_stays_registered(
    make_session, make_stream, registry
):
    """Test that a blocked client's name cannot be reused."""
    session = make_session(make_stream("Ana", "pepsi", "pepsi", "pepsi"))

    await session.run()

    assert session.blocked is True
    assert "Ana" in registry
    assert registry.try_acquire("ana", object()) is False


@pytest.mark.asyncio
async def test_custom_warning_limit(
    registry, channel, memory_writer, make_stream
):
    session = ClientSession(
        make_stream("Ana", "pepsi"),
        memory_writer,
        registry,
        ModerationPolicy(),
        channel,
        max_warnings=1,
    )

    await session.run()

    assert session.blocked is True


@pytest.mark.asyncio
async def test_drop_during_handshake_has_no_leave_notice(
    make_session, make_stream, memory_writer, channel, registry
):
    """Test that a client that never got a name leaves silently."""
    session = make_session(make_stream())

    await session.run()

    assert channel.published == []
    assert len(registry) == 0
    assert session.state is SessionState.CLOSED
    assert memory_writer.closed


@pytest.mark.asyncio
async def test_drop_while_active_announces_leave(
    make_session, make_stream, channel, registry
):
    """Test that an abrupt disconnect cleans up like a logout."""
    session = make_session(make_stream("Ana", "hello"))

    await session.run()

    assert channel.published == [
        JOIN_NOTICE.format(name="Ana"),
        "Ana: hello",
        LEAVE_NOTICE.format(name="Ana"),
    ]
    assert "Ana" not in registry


@pytest.mark.asyncio
async def test_write_failure_is_contained(
    make_session, make_stream, channel, failing_writer
):
    """Test that a broken connection never escapes run()."""
    writer = failing_writer
    session = make_session(make_stream("Ana"), writer=writer)

    await session.run()

    assert session.state is SessionState.CLOSED
    assert writer.closed
    assert channel.published == []


@pytest.mark.asyncio
async def test_failed_acceptance_signal_leaves_silently(
    make_session, make_stream, make_writer, channel, registry
):
    """Test that a client never told it was accepted gets no notices."""
    writer = make_writer(fail_after=1)
    session = make_session(make_stream("Ana", "hello"), writer=writer)

    await session.run()

    assert channel.published == []
    assert session.name == ""
    assert session.state is SessionState.CLOSED
    assert "Ana" not in registry
    assert writer.closed


@pytest.mark.asyncio
async def test_blocked_session_is_not_kept_by_registry(
    make_session, make_stream, registry
):
    session = make_session(make_stream("Ana", "pepsi", "pepsi", "pepsi"))

    await session.run()

    assert session.blocked is True
    assert "Ana" in registry
    registry.release(session)
    assert "Ana" in registry

@pytest.mark.asyncio
async def test_close_is_idempotent(make_session, make_stream, channel):
    session = make_session(make_stream("Ana", "!salir"))
    await session.run()
    published = list(channel.published)

    await session.close()
    await session.close()

    assert channel.published == published
