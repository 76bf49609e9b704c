"""
relaychat

A text chat service: a relay that negotiates unique names over TCP,
moderates messages, and fans accepted lines out over a broadcast group,
plus the matching client.

Subpackages:
    - server: name registry, moderation, broadcast channel, sessions, acceptor
    - client: server link, broadcast listener, display sink, terminal UI
"""

__version__ = "0.1.0"
