"""
Error Types

Exceptions shared by the relay and the client. Name rejections and
moderation rejections are not exceptions: they travel over the wire as a
``False`` signal and a private warning respectively.
"""


class ChatError(Exception):
    """Base class for all relaychat errors."""


class TransportFailure(ChatError, ConnectionError):
    """A connection closed or could not be read."""


class ProtocolError(TransportFailure):
    """The peer sent bytes that do not form a valid frame."""


class FrameTooLarge(ChatError, ValueError):
    """An outbound frame does not fit the 16-bit length prefix."""


class WarningLimitExceeded(ChatError):
    """
    Raised by a session when a client accumulates too many warnings.

    Attributes:
        name: The display name of the offending client
        warnings: Number of rejected messages so far
    """

    def __init__(self, name: str, warnings: int):
        super().__init__(f"{name} reached {warnings} warnings")
        self.name = name
        self.warnings = warnings
