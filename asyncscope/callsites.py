"""A bounded set of callsites with an overflow set."""

from __future__ import annotations

import threading
from typing import Any


class Callsites:
    """Set of callsites, compared by identity.

    Up to ``max_callsites`` callsites are kept in a small list that is scanned
    quickly; further callsites spill over into a dictionary.
    """

    def __init__(self, max_callsites: int) -> None:
        if max_callsites < 0:
            raise ValueError("max_callsites must not be negative")
        self.max_callsites = max_callsites
        self._slots: list[Any] = []
        self._spill: dict[int, Any] = {}
        self._lock = threading.Lock()

    def insert(self, callsite: Any) -> None:
        """Add a callsite; inserting one already present does nothing."""
        with self._lock:
            if self._contains_locked(callsite):
                return
            if len(self._slots) < self.max_callsites:
                self._slots.append(callsite)
            else:
                self._spill[id(callsite)] = callsite

    def _contains_locked(self, callsite: Any) -> bool:
        if any(cs is callsite for cs in self._slots):
            return True
        return self._spill.get(id(callsite)) is callsite

    def __contains__(self, callsite: Any) -> bool:
        if any(cs is callsite for cs in list(self._slots)):
            return True
        if len(self._slots) < self.max_callsites:
            return False
        with self._lock:
            return self._spill.get(id(callsite)) is callsite

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots) + len(self._spill)

    def __repr__(self) -> str:
        with self._lock:
            return (
                f"Callsites(len={len(self._slots) + len(self._spill)}, "
                f"max_callsites={self.max_callsites}, spilled={len(self._spill)})"
            )