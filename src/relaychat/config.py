"""
Configuration

Network parameters and policy settings for the relay and the client,
read from environment variables with sensible defaults.

Relay variables:
    RELAY_HOST, RELAY_PORT, BROADCAST_GROUP, BROADCAST_PORT,
    BROADCAST_TTL, FORBIDDEN_WORDS (comma separated), MAX_WARNINGS

Client variables:
    RELAY_HOST, RELAY_PORT, BROADCAST_GROUP, BROADCAST_PORT,
    BROADCAST_INTERFACE
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_RELAY_PORT = 2000
DEFAULT_BROADCAST_GROUP = "231.0.0.1"
DEFAULT_BROADCAST_PORT = 10000
DEFAULT_MAX_WARNINGS = 3

DEFAULT_FORBIDDEN_WORDS: Tuple[str, ...] = (
    "Cocacola",
    "Pepsi",
    "Danone",
    "Nestle",
    "Puleva",
    "Bimbo",
    "Pascual",
    "Campofrio",
)


def _get_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


def _get_words(env: Mapping[str, str], key: str) -> Tuple[str, ...]:
    words = tuple(
        word.strip() for word in env.get(key, "").split(",") if word.strip()
    )
    return words or DEFAULT_FORBIDDEN_WORDS


@dataclass(frozen=True)
class RelayConfig:
    """
    Settings for the relay process.

    Attributes:
        host: Address the TCP listener binds to
        port: TCP port to listen on (0 picks an ephemeral port)
        group: Broadcast group address
        group_port: Broadcast destination port
        ttl: Multicast time-to-live for broadcast datagrams
        forbidden_words: Words that make a message unacceptable
        max_warnings: Rejected messages allowed before a client is blocked
    """

    host: str = "0.0.0.0"
    port: int = DEFAULT_RELAY_PORT
    group: str = DEFAULT_BROADCAST_GROUP
    group_port: int = DEFAULT_BROADCAST_PORT
    ttl: int = 1
    forbidden_words: Tuple[str, ...] = DEFAULT_FORBIDDEN_WORDS
    max_warnings: int = DEFAULT_MAX_WARNINGS

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RelayConfig":
        env = os.environ if env is None else env
        return cls(
            host=env.get("RELAY_HOST", "0.0.0.0"),
            port=_get_int(env, "RELAY_PORT", DEFAULT_RELAY_PORT),
            group=env.get("BROADCAST_GROUP", DEFAULT_BROADCAST_GROUP),
            group_port=_get_int(env, "BROADCAST_PORT", DEFAULT_BROADCAST_PORT),
            ttl=_get_int(env, "BROADCAST_TTL", 1),
            forbidden_words=_get_words(env, "FORBIDDEN_WORDS"),
            max_warnings=_get_int(env, "MAX_WARNINGS", DEFAULT_MAX_WARNINGS),
        )


@dataclass(frozen=True)
class ClientConfig:
    """Settings for a chat client."""

    host: str = "localhost"
    port: int = DEFAULT_RELAY_PORT
    group: str = DEFAULT_BROADCAST_GROUP
    group_port: int = DEFAULT_BROADCAST_PORT
    interface: str = "0.0.0.0"

    @classmethod
    def from_env(
        cls, env: Optional[Mapping[str, str]] = None
    ) -> "ClientConfig":
        env = os.environ if env is None else env
        return cls(
            host=env.get("RELAY_HOST", "localhost"),
            port=_get_int(env, "RELAY_PORT", DEFAULT_RELAY_PORT),
            group=env.get("BROADCAST_GROUP", DEFAULT_BROADCAST_GROUP),
            group_port=_get_int(env, "BROADCAST_PORT", DEFAULT_BROADCAST_PORT),
            interface=env.get("BROADCAST_INTERFACE", "0.0.0.0"),
        )
