from backend import Room, RoomTable
from connections import ConnectionManager
from admission import sanitize_name
from logging_config import get_logger
from schemas.messages import PartialState

logger = get_logger(__name__)


class PresenceManager:
    """Departures (explicit or abrupt) and member state changes."""

    def __init__(self, room_table: RoomTable, connections: ConnectionManager):
        self.room_table = room_table
        self.connections = connections

    async def leave(self, session_id: str, room_id: str):
        room = self.room_table.get(room_id)
        if room is None:
            return
        await self._remove_from_room(room, session_id)

    async def disconnect(self, session_id: str):
        rooms = self.room_table.rooms_for_session(session_id)
        logger.info(f"Cleaning up {session_id} from {len(rooms)} room(s)")
        for room in rooms:
            await self._remove_from_room(room, session_id)

    async def _remove_from_room(self, room: Room, session_id: str):
        was_member = room.members.pop(session_id, None) is not None
        was_waiting = room.waiting.pop(session_id, None) is not None
        if not (was_member or was_waiting):
            return
        logger.info(f"Session {session_id} left room {room.id} (member={was_member}, waiting={was_waiting})")

        if self.room_table.remove_if_empty(room.id):
            return

        if was_member:
            await self.connections.broadcast(room.member_ids(), "peer-left", {"id": session_id})
        if was_waiting:
            await self.connections.broadcast(room.member_ids(), "waiting-list", {"list": room.waiting_list()})

    async def state_update(self, session_id: str, room_id: str, partial: PartialState):
        room = self.room_table.get(room_id)
        if room is None or session_id not in room.members:
            return
        changes = partial.changes()
        if not changes:
            return

        state = room.members[session_id]
        room.members[session_id] = state.model_copy(update=changes)
        # The sender's UI already shows its own change
        await self.connections.broadcast(
            room.member_ids(exclude=session_id),
            "state-update",
            {"id": session_id, "partial": partial.to_wire()},
        )

    async def rename(self, session_id: str, room_id: str, name: str):
        display_name = sanitize_name(name, session_id)
        room = self.room_table.get(room_id)
        if room is None or session_id not in room.members:
            return

        state = room.members[session_id]
        room.members[session_id] = state.model_copy(update={"name": display_name})
        logger.debug(f"Session {session_id} renamed to {display_name} in room {room_id}")
        # Room-wide, sender included, so the renaming client's other views stay in sync
        await self.connections.broadcast(
            room.member_ids(),
            "state-update",
            {"id": session_id, "partial": {"name": display_name}},
        )
