class PresenceError(Exception):
    """Base class for relay errors. These never reach a connected client."""


class UnknownRoomError(PresenceError, KeyError):
    def __init__(self, room_name: str):
        super().__init__(f"Room {room_name!r} does not exist")
        self.room_name = room_name


class UnknownMemberError(PresenceError, KeyError):
    def __init__(self, room_name: str, connection_id: str):
        super().__init__(f"Connection {connection_id!r} is not a member of room {room_name!r}")
        self.room_name = room_name
        self.connection_id = connection_id
