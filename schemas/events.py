from pydantic import BaseModel, ConfigDict, Field
from typing import Union

Coordinate = Union[int, float]


class CreateRoomPayload(BaseModel):
    room_name: str


class JoinPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    room_name: str = Field(alias="roomName")
    username: str


class MousePositionPayload(BaseModel):
    x: Coordinate
    y: Coordinate


class UserJoinedEvent(BaseModel):
    username: str
    user_id: str = Field(serialization_alias="userId")
    color: str


class MousePositionEvent(BaseModel):
    username: str
    x: Coordinate
    y: Coordinate
    color: str


class UserLeftEvent(BaseModel):
    user_id: str = Field(serialization_alias="userId")
