from pydantic import BaseModel


class RoomSummary(BaseModel):
    room_name: str
    member_count: int


class RoomMember(BaseModel):
    user_id: str
    username: str
    color: str


class RoomDetailsResponse(BaseModel):
    room_name: str
    member_count: int
    members: list[RoomMember]
