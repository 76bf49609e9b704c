#!/usr/bin/env python3
"""
Chat Relay Server

Accepts chat clients over TCP and relays moderated messages to the
broadcast group.
"""

import asyncio
import logging
import signal
import sys

from ..config import RelayConfig
from .acceptor import ConnectionAcceptor
from .broadcast import BroadcastChannel
from .moderation import ModerationPolicy
from .registry import NameRegistry

logger = logging.getLogger(__name__)


def build_acceptor(config: RelayConfig) -> ConnectionAcceptor:
    """Wire the shared components for a relay described by config."""
    registry = NameRegistry()
    policy = ModerationPolicy(config.forbidden_words)
    channel = BroadcastChannel(config.group, config.group_port, config.ttl)
    return ConnectionAcceptor(
        config.host,
        config.port,
        registry,
        policy,
        channel,
        max_warnings=config.max_warnings,
    )


async def run_server(config: RelayConfig) -> None:
    """
    Run the relay until SIGINT or SIGTERM.

    Args:
        config: Relay settings
    """
    acceptor = build_acceptor(config)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, acceptor.stop)
        except NotImplementedError:
            # Windows event loops; KeyboardInterrupt still reaches main()
            pass

    await acceptor.start()
    logger.info(
        f"Broadcasting to {config.group}:{config.group_port} "
        f"with {len(acceptor.policy.forbidden_words)} forbidden words"
    )
    await acceptor.serve_forever()


def main():
    """Main entry point for the relay server."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = RelayConfig.from_env()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    logger.info("Starting chat relay...")
    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Shutting down chat relay...")
        sys.exit(0)


if __name__ == "__main__":
    main()
