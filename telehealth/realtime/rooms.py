"""
Participant tracking for signaling rooms.

A room is just a name mapped to the set of connection ids currently in
it.  Rooms are created on first join and dropped when the last
participant leaves.
"""
from __future__ import annotations

import re
import threading
from typing import Dict, List, Set

ROOM_ID_RE = re.compile(r'^[A-Za-z0-9_.\-]{1,64}$')


def is_valid_room_id(room_id) -> bool:
    return isinstance(room_id, str) and bool(ROOM_ID_RE.match(room_id))


def room_group_name(room_id: str) -> str:
    return f"room.{room_id}"


class RoomRegistry:
    def __init__(self):
        self._rooms: Dict[str, Set[str]] = {}
        self._lock = threading.Lock()

    def join(self, room_id: str, conn_id: str) -> List[str]:
        """Add ``conn_id`` to ``room_id`` and return the other participants."""
        with self._lock:
            members = self._rooms.setdefault(room_id, set())
            members.add(conn_id)
            return sorted(m for m in members if m != conn_id)

    def leave(self, room_id: str, conn_id: str) -> bool:
        with self._lock:
            members = self._rooms.get(room_id)
            if not members or conn_id not in members:
                return False
            members.discard(conn_id)
            if not members:
                del self._rooms[room_id]
            return True

    def leave_all(self, conn_id: str) -> List[str]:
        """Remove ``conn_id`` from every room; return the rooms it left."""
        left = []
        with self._lock:
            for room_id in list(self._rooms):
                members = self._rooms[room_id]
                if conn_id in members:
                    members.discard(conn_id)
                    left.append(room_id)
                    if not members:
                        del self._rooms[room_id]
        return sorted(left)

    def participants(self, room_id: str) -> List[str]:
        with self._lock:
            return sorted(self._rooms.get(room_id, ()))

    def is_member(self, room_id: str, conn_id: str) -> bool:
        with self._lock:
            return conn_id in self._rooms.get(room_id, ())

    def rooms(self) -> Dict[str, List[str]]:
        with self._lock:
            return {room_id: sorted(members) for room_id, members in self._rooms.items()}

    def clear(self) -> None:
        with self._lock:
            self._rooms.clear()


room_registry = RoomRegistry()
