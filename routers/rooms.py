from fastapi import APIRouter, HTTPException, Request

from logging_config import get_logger
from schemas.rooms import RoomDetailsResponse

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request):
    """
    Read-only room summary, used by the landing page before opening a socket.
    Member identities and roles are never exposed here.

    Returns:
    - room_id: Room identifier
    - member_count: Number of active members
    - waiting_count: Number of sessions queued on the waiting list
    - max_room_size: Capacity limit for the room
    - locked: Whether new joiners are routed to the waiting list
    - is_full: Whether the room has reached capacity
    """
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room details request for {room_id} from {client_host}")

    coordinator = request.app.state.coordinator
    room = coordinator.room_table.get(room_id)
    if room is None:
        logger.debug(f"Room details failed: Room {room_id} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    member_count = len(room.members)
    return RoomDetailsResponse(
        room_id=room_id,
        member_count=member_count,
        waiting_count=len(room.waiting),
        max_room_size=coordinator.max_room_size,
        locked=room.locked,
        is_full=member_count >= coordinator.max_room_size,
    )
