"""
Match Store

Keeps active duels keyed by match id. Each match carries its own lock so
operations on different matches never contend with each other.
"""

import threading
from typing import Dict, List, Optional, Tuple

from ..models.duel import DuelState


class MatchEntry:
    """A duel plus the lock that serializes every operation on it."""

    def __init__(self, state: DuelState):
        self.state = state
        self.lock = threading.Lock()


class MatchStore:
    """Interface for match storage injected into the duel service."""

    def get(self, match_id: str) -> Optional[MatchEntry]:
        raise NotImplementedError

    def put(self, match_id: str, state: DuelState) -> bool:
        """Store a new match. Returns False if match_id is already taken."""
        raise NotImplementedError

    def delete(self, match_id: str) -> bool:
        raise NotImplementedError

    def items(self) -> List[Tuple[str, MatchEntry]]:
        raise NotImplementedError

    def __len__(self) -> int:
        raise NotImplementedError


class InMemoryMatchStore(MatchStore):
    """Process-memory store. The registry lock only guards the dict itself."""

    def __init__(self):
        self._entries: Dict[str, MatchEntry] = {}
        self._registry_lock = threading.Lock()

    def get(self, match_id: str) -> Optional[MatchEntry]:
        with self._registry_lock:
            return self._entries.get(match_id)

    def put(self, match_id: str, state: DuelState) -> bool:
        with self._registry_lock:
            if match_id in self._entries:
                return False
            self._entries[match_id] = MatchEntry(state)
            return True

    def delete(self, match_id: str) -> bool:
        with self._registry_lock:
            return self._entries.pop(match_id, None) is not None

    def items(self) -> List[Tuple[str, MatchEntry]]:
        with self._registry_lock:
            return list(self._entries.items())

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._entries)
