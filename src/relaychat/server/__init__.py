"""
Relay Server Package

This package provides the relay side of the chat service: the name
registry, moderation policy, broadcast channel, per-connection sessions
and the connection acceptor.
"""

from .registry import NameRegistry
from .moderation import ModerationPolicy, Verdict
from .broadcast import BroadcastChannel
from .session import ClientSession, SessionState
from .acceptor import ConnectionAcceptor

__all__ = [
    "NameRegistry",
    "ModerationPolicy",
    "Verdict",
    "BroadcastChannel",
    "ClientSession",
    "SessionState",
    "ConnectionAcceptor",
]
