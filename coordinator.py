import asyncio
import uuid
from typing import Awaitable, Callable, Dict, Optional, Tuple, Type

from fastapi import WebSocket
from pydantic import BaseModel, ValidationError

from admission import AdmissionController
from backend import RoomTable
from connections import ConnectionManager
from constants import MAX_ROOM_SIZE
from logging_config import get_logger
from presence import PresenceManager
from relay import MessageRouter
from schemas.messages import (ChatRequest, Envelope, JoinRequest, LeaveRequest, LockRoomRequest, ReactionRequest,
                              RenameRequest, SignalRequest, StateUpdateRequest, TargetRequest)

logger = get_logger(__name__)

Handler = Callable[[str, BaseModel], Awaitable[None]]


class Coordinator:
    """Owns the room table and runs each inbound event as one atomic step.

    All events, from every connection, are applied under a single asyncio lock
    so that concurrent joins can never push a room past its capacity and no
    broadcast ever reflects a half-applied event. Handlers only enqueue
    outbound frames while the lock is held; the socket writes happen in each
    session's writer task, so a stalled client never blocks other sessions.
    """

    def __init__(self, max_room_size: int = MAX_ROOM_SIZE, room_table: Optional[RoomTable] = None):
        self.room_table = room_table if room_table is not None else RoomTable()
        self.connections = ConnectionManager()
        self.max_room_size = max_room_size
        self.admission = AdmissionController(self.room_table, self.connections, max_room_size)
        self.router = MessageRouter(self.room_table, self.connections)
        self.presence = PresenceManager(self.room_table, self.connections)
        self._lock = asyncio.Lock()

        self.handlers: Dict[str, Tuple[Type[BaseModel], Handler]] = {
            "join": (JoinRequest, self._on_join),
            "leave": (LeaveRequest, self._on_leave),
            "lock-room": (LockRoomRequest, self._on_lock_room),
            "admit": (TargetRequest, self._on_admit),
            "deny": (TargetRequest, self._on_deny),
            "signal": (SignalRequest, self._on_signal),
            "state-update": (StateUpdateRequest, self._on_state_update),
            "rename": (RenameRequest, self._on_rename),
            "chat": (ChatRequest, self._on_chat),
            "reaction": (ReactionRequest, self._on_reaction),
        }

    def connect(self, websocket: WebSocket) -> str:
        session_id = str(uuid.uuid4())
        self.connections.connect(session_id, websocket)
        logger.info(f"Session {session_id} connected")
        return session_id

    async def disconnect(self, session_id: str):
        async with self._lock:
            self.connections.disconnect(session_id)
            try:
                await self.presence.disconnect(session_id)
            except Exception as e:
                logger.error(f"Error cleaning up session {session_id}: {e}", exc_info=True)
        logger.info(f"Session {session_id} disconnected")

    async def handle_message(self, session_id: str, raw: str):
        try:
            envelope = Envelope.model_validate_json(raw)
        except ValidationError:
            logger.debug(f"Ignoring malformed frame from {session_id}")
            return

        handler = self.handlers.get(envelope.event)
        if handler is None:
            logger.debug(f"Ignoring unknown event {envelope.event!r} from {session_id}")
            return

        model, callback = handler
        try:
            payload = model.model_validate(envelope.data)
        except ValidationError as e:
            logger.debug(f"Ignoring invalid {envelope.event} from {session_id}: {e.error_count()} error(s)")
            return

        async with self._lock:
            try:
                await callback(session_id, payload)
            except Exception as e:
                logger.error(f"Error handling {envelope.event} from {session_id}: {e}", exc_info=True)

    async def _on_join(self, session_id: str, request: JoinRequest):
        await self.admission.join(session_id, request.room_id, request.name)

    async def _on_leave(self, session_id: str, request: LeaveRequest):
        await self.presence.leave(session_id, request.room_id)

    async def _on_lock_room(self, session_id: str, request: LockRoomRequest):
        await self.admission.set_lock(session_id, request.room_id, request.locked)

    async def _on_admit(self, session_id: str, request: TargetRequest):
        await self.admission.admit(session_id, request.room_id, request.id)

    async def _on_deny(self, session_id: str, request: TargetRequest):
        await self.admission.deny(session_id, request.room_id, request.id)

    async def _on_signal(self, session_id: str, request: SignalRequest):
        await self.router.signal(session_id, request.room_id, request.type, request.opaque_payload(), request.to)

    async def _on_state_update(self, session_id: str, request: StateUpdateRequest):
        await self.presence.state_update(session_id, request.room_id, request.partial)

    async def _on_rename(self, session_id: str, request: RenameRequest):
        await self.presence.rename(session_id, request.room_id, request.name)

    async def _on_chat(self, session_id: str, request: ChatRequest):
        await self.router.chat(session_id, request.room_id, request.text, request.to)

    async def _on_reaction(self, session_id: str, request: ReactionRequest):
        await self.router.reaction(session_id, request.room_id, request.emoji, request.to)
