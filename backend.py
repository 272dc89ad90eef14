from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Set

from constants import UNKNOWN_USERNAME
from errors import UnknownMemberError, UnknownRoomError
from logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Member:
    connection_id: str
    username: str
    color: str


@dataclass
class Room:
    name: str
    members: Dict[str, Member] = field(default_factory=dict)
    # Creators that have not joined yet: they hear room events but have no color
    listeners: Set[str] = field(default_factory=set)

    def is_abandoned(self) -> bool:
        return not self.members and not self.listeners


class ConnectionRegistry:
    def __init__(self):
        # Format: {connection_id: display_name or None before join}
        self._names: Dict[str, Optional[str]] = {}

    def connect(self, connection_id: str):
        self._names.setdefault(connection_id, None)
        logger.debug(f"Registered connection {connection_id}")

    def record_join(self, connection_id: str, name: str):
        """Store the display name for a connection. Last write wins."""
        self._names[connection_id] = name
        logger.debug(f"Connection {connection_id} is now known as {name}")

    def lookup_name(self, connection_id: str) -> str:
        name = self._names.get(connection_id)
        if name is None:
            logger.debug(f"No display name recorded for connection {connection_id}")
            return UNKNOWN_USERNAME
        return name

    def remove(self, connection_id: str):
        if connection_id in self._names:
            del self._names[connection_id]
            logger.debug(f"Removed connection {connection_id} from registry")

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._names

    def __contains__(self, connection_id: str) -> bool:
        return self.is_connected(connection_id)

    def __len__(self) -> int:
        return len(self._names)


class RoomDirectory:
    def __init__(self):
        # Format: {room_name: Room}
        self._rooms: Dict[str, Room] = {}

    def ensure_room(self, room_name: str) -> Room:
        room = self._rooms.get(room_name)
        if room is None:
            room = Room(name=room_name)
            self._rooms[room_name] = room
            logger.info(f"Room {room_name} created")
        return room

    def has_room(self, room_name: str) -> bool:
        return room_name in self._rooms

    def add_member(self, room_name: str, connection_id: str, name: str, color: str):
        """Insert or overwrite the membership of a connection in a room.

        The room is created if it does not exist yet. A connection that was
        only listening to the room (its creator) becomes a regular member.
        """
        room = self.ensure_room(room_name)
        existed = connection_id in room.members
        room.members[connection_id] = Member(connection_id=connection_id, username=name, color=color)
        room.listeners.discard(connection_id)
        if existed:
            logger.debug(f"Member {connection_id} in room {room_name} updated (name={name}, color={color})")
        else:
            logger.debug(f"Member {connection_id} added to room {room_name} ({len(room.members)} members)")

    def remove_member(self, room_name: str, connection_id: str) -> bool:
        """Remove a member. Returns True when the room was deleted as a result.

        A room outlives its last member while its creator is still listening.
        """
        room = self._rooms.get(room_name)
        if room is None:
            return False
        removed = room.members.pop(connection_id, None)
        if removed is None:
            return False
        logger.debug(f"Member {connection_id} removed from room {room_name} ({len(room.members)} members left)")
        if room.is_abandoned():
            del self._rooms[room_name]
            return True
        return False

    def add_listener(self, room_name: str, connection_id: str):
        room = self.ensure_room(room_name)
        if connection_id not in room.members:
            room.listeners.add(connection_id)

    def remove_listener(self, room_name: str, connection_id: str) -> bool:
        """Drop a listener. Returns True when this left the room with nobody in it."""
        room = self._rooms.get(room_name)
        if room is None or connection_id not in room.listeners:
            return False
        room.listeners.discard(connection_id)
        if room.is_abandoned():
            del self._rooms[room_name]
            return True
        return False

    def member_color(self, room_name: str, connection_id: str) -> str:
        room = self._rooms.get(room_name)
        if room is None:
            raise UnknownRoomError(room_name)
        member = room.members.get(connection_id)
        if member is None:
            raise UnknownMemberError(room_name, connection_id)
        return member.color

    def rooms_containing(self, connection_id: str) -> List[str]:
        # Sorted copy so callers can mutate the directory while iterating
        return sorted(name for name, room in self._rooms.items() if connection_id in room.members)

    def rooms_listened_by(self, connection_id: str) -> List[str]:
        return sorted(name for name, room in self._rooms.items() if connection_id in room.listeners)

    def recipients(self, room_name: str, exclude: Optional[str] = None) -> List[str]:
        """Everyone who hears broadcasts in a room, members first, minus `exclude`."""
        room = self._rooms.get(room_name)
        if room is None:
            return []
        targets = [conn_id for conn_id in room.members if conn_id != exclude]
        targets.extend(sorted(conn_id for conn_id in room.listeners if conn_id != exclude))
        return targets

    def members(self, room_name: str) -> List[Member]:
        room = self._rooms.get(room_name)
        if room is None:
            raise UnknownRoomError(room_name)
        return list(room.members.values())

    def room_names(self) -> FrozenSet[str]:
        return frozenset(self._rooms)

    def __len__(self) -> int:
        return len(self._rooms)


class PresenceState:
    """All shared relay state for one server instance."""

    def __init__(self, registry: Optional[ConnectionRegistry] = None, directory: Optional[RoomDirectory] = None):
        self.registry = registry if registry is not None else ConnectionRegistry()
        self.directory = directory if directory is not None else RoomDirectory()
        logger.info("Initialized in-memory presence state")
