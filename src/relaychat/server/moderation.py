"""
Moderation Policy

Decides whether a chat message may be broadcast.
"""

from enum import Enum
from typing import Iterable

from ..config import DEFAULT_FORBIDDEN_WORDS


class Verdict(Enum):
    """Outcome of evaluating a message."""

    ALLOWED = "allowed"
    REJECTED = "rejected"


class ModerationPolicy:
    """
    Rejects messages containing any forbidden word.

    Matching is a case-insensitive substring test, so "PEPSICO" is rejected
    when "pepsi" is forbidden. The word set is frozen at construction and
    the policy is safe to call from any number of sessions at once.
    """

    def __init__(self, forbidden_words: Iterable[str] = DEFAULT_FORBIDDEN_WORDS):
        self.forbidden_words = frozenset(
            word.casefold() for word in forbidden_words if word
        )

    def evaluate(self, message: str) -> Verdict:
        folded = message.casefold()
        if any(word in folded for word in self.forbidden_words):
            return Verdict.REJECTED
        return Verdict.ALLOWED
