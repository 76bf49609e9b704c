"""
Name Registry

Tracks the display names held by connected sessions. Names are unique
case-insensitively; the check and the insert happen under one lock so two
sessions can never acquire the same name concurrently.
"""

import logging
import threading
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class RetainedName:
    """Placeholder owner for a name kept after its session is gone."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "RetainedName()"


def normalize_name(name: str) -> str:
    """Key used for case-insensitive comparison."""
    return name.casefold()


class NameRegistry:
    """
    Thread-safe set of active session names.

    Each entry maps a normalized name to the session that owns it. The
    registry owns no network resources; sessions register and release
    themselves.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._owners: Dict[str, Any] = {}  # normalized name -> session
        self._names: Dict[str, str] = {}  # normalized name -> name as given

    def try_acquire(self, name: str, owner: Any) -> bool:
        """
        Register a name for an owner if no one holds it.

        Args:
            name: The requested display name
            owner: The session claiming the name

        Returns:
            True if the name was registered, False if it is blank or taken
        """
        if not name or not name.strip():
            return False

        key = normalize_name(name)
        with self._lock:
            if key in self._owners:
                return False
            self._owners[key] = owner
            self._names[key] = name

        logger.info(f"Name registered: {name}")
        return True

    def release(self, owner: Any) -> None:
        """
        Remove the entry owned by the given session.

        Does nothing if the owner never registered a name.
        """
        with self._lock:
            key = next(
                (k for k, o in self._owners.items() if o is owner), None
            )
            if key is None:
                return
            del self._owners[key]
            name = self._names.pop(key)

        logger.info(f"Name released: {name}")

    def retain(self, owner: Any) -> None:
        """
        Keep the owner's name registered for good.

        The entry is handed to a RetainedName so the name stays taken while
        the session object itself can be freed. Does nothing if the owner
        holds no name.
        """
        with self._lock:
            key = next(
                (k for k, o in self._owners.items() if o is owner), None
            )
            if key is None:
                return
            self._owners[key] = RetainedName()
            name = self._names[key]

        logger.info(f"Name retained: {name}")

    def list_active(self) -> List[str]:
        """Return a sorted snapshot of the registered names."""
        with self._lock:
            return sorted(self._names.values(), key=normalize_name)

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return normalize_name(name) in self._owners

    def __len__(self) -> int:
        with self._lock:
            return len(self._owners)
