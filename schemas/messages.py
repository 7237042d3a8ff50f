from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

"""
Wire format: every websocket frame is {"event": <name>, "data": <payload>}.
Payload field names are camelCase on the wire and snake_case in Python.

Client -> Server events:
    join, leave, lock-room, admit, deny, signal, state-update, rename, chat, reaction

Server -> Client events:
    joined, waiting, waiting-list, lock-state, denied, peer-joined, peer-left,
    signal, state-update, chat, reaction, error
"""


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class Role(str, Enum):
    host = "host"
    guest = "guest"


class MemberState(WireModel):
    name: str
    muted: bool = False
    video_on: bool = Field(True, alias="videoOn")
    hand_raised: bool = Field(False, alias="handRaised")
    sharing: bool = False
    role: Role = Role.guest

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


class WaitingEntry(BaseModel):
    name: str


class Envelope(BaseModel):
    event: str
    data: Any = None


# Client -> Server payloads

class RoomRequest(WireModel):
    room_id: str = Field(alias="roomId", min_length=1)


class JoinRequest(RoomRequest):
    name: Optional[str] = None


class LeaveRequest(RoomRequest):
    pass


class LockRoomRequest(RoomRequest):
    locked: bool


class TargetRequest(RoomRequest):
    """Used by both admit and deny."""
    id: str


class SignalType(str, Enum):
    offer = "offer"
    answer = "answer"
    candidate = "candidate"


class SignalRequest(RoomRequest):
    type: SignalType
    to: str
    # Opaque to the coordinator, relayed as-is
    sdp: Any = None
    candidate: Any = None

    def opaque_payload(self) -> dict:
        """Only the negotiation fields the client actually sent."""
        return {key: getattr(self, key) for key in ("sdp", "candidate") if key in self.model_fields_set}


class PartialState(WireModel):
    muted: Optional[bool] = None
    video_on: Optional[bool] = Field(None, alias="videoOn")
    hand_raised: Optional[bool] = Field(None, alias="handRaised")
    sharing: Optional[bool] = None

    def changes(self) -> dict:
        """Fields present in the update, keyed by python attribute name."""
        return self.model_dump(exclude_none=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class StateUpdateRequest(RoomRequest):
    partial: PartialState


class RenameRequest(RoomRequest):
    name: str


class ChatRequest(RoomRequest):
    text: str
    to: Optional[str] = None


class ReactionRequest(RoomRequest):
    emoji: str
    to: Optional[str] = None
