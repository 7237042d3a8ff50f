from typing import Optional

from backend import Room, RoomTable
from connections import ConnectionManager
from constants import MAX_NAME_LENGTH, MAX_ROOM_SIZE, ROOM_FULL_ERROR
from logging_config import get_logger
from schemas.messages import MemberState, Role, WaitingEntry

logger = get_logger(__name__)


def sanitize_name(name: Optional[str], session_id: str) -> str:
    cleaned = (name or "").strip()[:MAX_NAME_LENGTH]
    return cleaned or f"Guest-{session_id[:4]}"


class AdmissionController:
    """Decides whether a joiner becomes a member, waits, or is turned away."""

    def __init__(self, room_table: RoomTable, connections: ConnectionManager, max_room_size: int = MAX_ROOM_SIZE):
        self.room_table = room_table
        self.connections = connections
        self.max_room_size = max_room_size

    async def join(self, session_id: str, room_id: str, name: Optional[str] = None):
        display_name = sanitize_name(name, session_id)
        room = self.room_table.get_or_create(room_id)

        if session_id in room.members or session_id in room.waiting:
            logger.debug(f"Ignoring repeated join from {session_id} for room {room_id}")
            return

        # Capacity is checked before the lock, so a full locked room rejects
        if len(room.members) >= self.max_room_size:
            logger.warning(f"Join rejected: room {room_id} is full ({len(room.members)}/{self.max_room_size})")
            self.room_table.remove_if_empty(room_id)
            await self.connections.send(session_id, "error", ROOM_FULL_ERROR)
            return

        if room.locked and room.members:
            room.waiting[session_id] = WaitingEntry(name=display_name)
            logger.info(f"Session {session_id} ({display_name}) is waiting to enter locked room {room_id}")
            await self.connections.send(session_id, "waiting", {})
            await self._broadcast_waiting_list(room)
            return

        role = Role.guest if room.members else Role.host
        state = MemberState(name=display_name, role=role)
        room.members[session_id] = state
        logger.info(f"Session {session_id} ({display_name}) joined room {room_id} as {role.value}")
        await self._announce_member(room, session_id, state)

    async def admit(self, host_id: str, room_id: str, target_id: str):
        room = self._room_for_host(host_id, room_id, "admit")
        if room is None:
            return
        entry = room.waiting.get(target_id)
        if entry is None:
            logger.debug(f"Admit ignored: {target_id} is not waiting in room {room_id}")
            return
        if len(room.members) >= self.max_room_size:
            logger.warning(f"Admit of {target_id} deferred: room {room_id} is full")
            return

        del room.waiting[target_id]
        state = MemberState(name=entry.name, role=Role.guest)
        room.members[target_id] = state
        logger.info(f"Host {host_id} admitted {target_id} ({entry.name}) into room {room_id}")

        await self._announce_member(room, target_id, state)
        await self._broadcast_waiting_list(room)

    async def deny(self, host_id: str, room_id: str, target_id: str):
        room = self._room_for_host(host_id, room_id, "deny")
        if room is None:
            return
        if room.waiting.pop(target_id, None) is None:
            logger.debug(f"Deny ignored: {target_id} is not waiting in room {room_id}")
            return
        logger.info(f"Host {host_id} denied {target_id} entry to room {room_id}")

        await self.connections.send(target_id, "denied", {})
        await self._broadcast_waiting_list(room)

    async def set_lock(self, host_id: str, room_id: str, locked: bool):
        room = self._room_for_host(host_id, room_id, "lock-room")
        if room is None:
            return
        room.locked = locked
        logger.info(f"Room {room_id} {'locked' if locked else 'unlocked'} by host {host_id}")
        await self.connections.broadcast(room.member_ids(), "lock-state", {"locked": locked})

    def _room_for_host(self, session_id: str, room_id: str, action: str) -> Optional[Room]:
        # Non-host callers get no reply at all, only a server-side log line
        room = self.room_table.get(room_id)
        if room is None or room.host_id != session_id:
            logger.warning(f"Unauthorized {action} from {session_id} in room {room_id}")
            return None
        return room

    async def _announce_member(self, room: Room, session_id: str, state: MemberState):
        await self.connections.send(session_id, "joined", {
            "selfId": session_id,
            "selfRole": state.role.value,
            "peers": room.peers(exclude=session_id),
        })
        await self.connections.broadcast(
            room.member_ids(exclude=session_id),
            "peer-joined",
            {"id": session_id, **state.to_wire()},
        )

    async def _broadcast_waiting_list(self, room: Room):
        await self.connections.broadcast(room.member_ids(), "waiting-list", {"list": room.waiting_list()})
