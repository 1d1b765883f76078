"""
Connection Registry

user_id -> live SignalConnection. Only the SignalHub processing loop
mutates it; everything else goes through the hub's operation queue.
"""
from typing import Dict, List, Optional

from .models import SignalConnection


class ConnectionRegistry:
    """Maps each user to at most one live connection (last registration wins)."""

    def __init__(self):
        self._connections: Dict[str, SignalConnection] = {}

    def register(self, user_id: str, connection: SignalConnection) -> Optional[SignalConnection]:
        """Store the connection and return the one it replaced, if any."""
        previous = self._connections.get(user_id)
        self._connections[user_id] = connection
        return previous

    def unregister(self, user_id: str, connection: Optional[SignalConnection] = None) -> bool:
        """
        Remove the user's entry.

        When `connection` is given the entry is only removed if it is still
        that connection, so a stale worker closing down cannot evict the
        newer registration that replaced it.
        """
        current = self._connections.get(user_id)
        if current is None:
            return False
        if connection is not None and current is not connection:
            return False
        del self._connections[user_id]
        return True

    def get(self, user_id: str) -> Optional[SignalConnection]:
        return self._connections.get(user_id)

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._connections

    def user_ids(self) -> List[str]:
        return list(self._connections.keys())

    def clear(self) -> List[SignalConnection]:
        connections = list(self._connections.values())
        self._connections.clear()
        return connections

    def __len__(self) -> int:
        return len(self._connections)
