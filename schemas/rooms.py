from pydantic import BaseModel


class RoomDetailsResponse(BaseModel):
    room_id: str
    member_count: int
    waiting_count: int
    max_room_size: int
    locked: bool
    is_full: bool
