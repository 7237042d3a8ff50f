from typing import Dict, List, Optional

from logging_config import get_logger
from schemas.messages import MemberState, Role, WaitingEntry

logger = get_logger(__name__)


class Room:
    def __init__(self, room_id: str):
        self.id = room_id
        # session id -> state, insertion order is join order
        self.members: Dict[str, MemberState] = {}
        self.waiting: Dict[str, WaitingEntry] = {}
        self.locked = False

    @property
    def host_id(self) -> Optional[str]:
        for session_id, state in self.members.items():
            if state.role == Role.host:
                return session_id
        return None

    def member_ids(self, exclude: Optional[str] = None) -> List[str]:
        return [session_id for session_id in self.members if session_id != exclude]

    def peers(self, exclude: Optional[str] = None) -> List[dict]:
        """Member snapshots as sent in joined/peer-joined."""
        return [
            {"id": session_id, **state.to_wire()}
            for session_id, state in self.members.items()
            if session_id != exclude
        ]

    def waiting_list(self) -> List[dict]:
        return [{"id": session_id, "name": entry.name} for session_id, entry in self.waiting.items()]

    def is_empty(self) -> bool:
        return len(self.members) == 0

    def __repr__(self):
        return f"Room(id={self.id!r}, members={len(self.members)}, waiting={len(self.waiting)}, locked={self.locked})"


class RoomTable:
    """In-process registry of live rooms, keyed by room id."""

    def __init__(self):
        self._rooms: Dict[str, Room] = {}
        logger.debug("Initializing empty RoomTable")

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id)
            self._rooms[room_id] = room
            logger.info(f"Created room {room_id}")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def remove_if_empty(self, room_id: str) -> bool:
        """Delete the room when it has no active members; waiting entries go with it."""
        room = self._rooms.get(room_id)
        if room is None or not room.is_empty():
            return False
        del self._rooms[room_id]
        logger.info(f"Deleted room {room_id} (discarded {len(room.waiting)} waiting entries)")
        return True

    def rooms_for_session(self, session_id: str) -> List[Room]:
        """Every room the session is a member of or waiting in."""
        return [
            room for room in self._rooms.values()
            if session_id in room.members or session_id in room.waiting
        ]

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
