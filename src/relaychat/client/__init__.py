"""
Client Package

This package provides the client side of the chat service: the link to
the relay, the broadcast listener and the display sink interface. The
terminal user interface lives in the `ui` subpackage.
"""

from .display import DisplaySink, TextualSink
from .listener import BroadcastListener
from .link import LinkState, ServerLink

__all__ = [
    "DisplaySink",
    "TextualSink",
    "BroadcastListener",
    "LinkState",
    "ServerLink",
]
