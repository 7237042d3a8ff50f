import time
from typing import Any, Dict, Optional

from backend import Room, RoomTable
from connections import ConnectionManager
from constants import MAX_CHAT_LENGTH
from logging_config import get_logger
from schemas.messages import SignalType

logger = get_logger(__name__)


class MessageRouter:
    """Relays signaling, chat and reactions between active members of a room."""

    def __init__(self, room_table: RoomTable, connections: ConnectionManager):
        self.room_table = room_table
        self.connections = connections

    def _member_room(self, session_id: str, room_id: str) -> Optional[Room]:
        room = self.room_table.get(room_id)
        if room is None or session_id not in room.members:
            return None
        return room

    async def signal(self, from_id: str, room_id: str, signal_type: SignalType, payload: Dict[str, Any], to_id: str):
        """Forward an offer/answer/candidate to one member.

        The payload is never inspected. Anything addressed to a session that is
        not an active member of the room is dropped without telling the sender.
        """
        room = self._member_room(from_id, room_id)
        if room is None or to_id not in room.members:
            logger.debug(f"Dropped {signal_type.value} signal from {from_id} to {to_id} in room {room_id}")
            return

        await self.connections.send(to_id, "signal", {
            "roomId": room_id,
            "type": signal_type.value,
            "to": to_id,
            "from": from_id,
            **payload,
        })

    async def chat(self, from_id: str, room_id: str, text: str, to_id: Optional[str] = None):
        room = self._member_room(from_id, room_id)
        if room is None:
            logger.debug(f"Dropped chat from {from_id}: not a member of room {room_id}")
            return
        text = text.strip()
        if not text:
            return

        message = {
            "roomId": room_id,
            "text": text[:MAX_CHAT_LENGTH],
            "from": from_id,
            "ts": int(time.time() * 1000),
        }
        if to_id is not None and to_id in room.members:
            message["to"] = to_id
            await self.connections.send(to_id, "chat", message)
        else:
            await self.connections.broadcast(room.member_ids(exclude=from_id), "chat", message)

    async def reaction(self, from_id: str, room_id: str, emoji: str, to_id: Optional[str] = None):
        room = self._member_room(from_id, room_id)
        if room is None or not emoji:
            return

        # Never echoed back, the sender renders its own reaction locally
        message = {"from": from_id, "emoji": emoji}
        if to_id is not None and to_id in room.members and to_id != from_id:
            await self.connections.send(to_id, "reaction", message)
        else:
            await self.connections.broadcast(room.member_ids(exclude=from_id), "reaction", message)
