from fastapi import APIRouter, HTTPException, Request

from errors import UnknownRoomError
from logging_config import get_logger
from schemas.rooms import RoomDetailsResponse, RoomMember, RoomSummary

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"])


@rooms_router.get("", response_model=list[RoomSummary])
async def list_rooms(request: Request):
    directory = request.app.state.relay.directory
    summaries = [
        RoomSummary(room_name=room_name, member_count=len(directory.members(room_name)))
        for room_name in sorted(directory.room_names())
    ]
    logger.debug(f"Listing {len(summaries)} rooms")
    return summaries


@rooms_router.get("/{room_name}", response_model=RoomDetailsResponse)
async def get_room_details(room_name: str, request: Request):
    """
    Get the live roster of a room.

    Returns:
    - room_name: Room name as clients refer to it
    - member_count: Number of joined members
    - members: user_id, username and per-room color of each member
    """
    directory = request.app.state.relay.directory
    try:
        members = directory.members(room_name)
    except UnknownRoomError:
        logger.info(f"Room details failed: Room {room_name} not found")
        raise HTTPException(status_code=404, detail="Room not found")

    return RoomDetailsResponse(
        room_name=room_name,
        member_count=len(members),
        members=[
            RoomMember(user_id=member.connection_id, username=member.username, color=member.color)
            for member in members
        ],
    )
