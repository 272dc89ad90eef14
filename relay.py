import random
import threading
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ValidationError

import event_names
from backend import PresenceState
from logging_config import get_logger
from schemas.events import (
    CreateRoomPayload,
    JoinPayload,
    MousePositionEvent,
    MousePositionPayload,
    UserJoinedEvent,
    UserLeftEvent,
)

logger = get_logger(__name__)


class Delivery(NamedTuple):
    target: str
    event: str
    payload: Dict[str, Any]


def generate_random_color() -> str:
    return "#{:06x}".format(random.randrange(0x1000000))


def _fan_out(targets: List[str], event: str, message: BaseModel) -> List[Delivery]:
    payload = message.model_dump(by_alias=True)
    return [Delivery(target, event, payload) for target in targets]


class EventRouter:
    """Applies inbound connection events to the presence state.

    Every handler runs under one lock and returns the deliveries the event
    produced; sending them is left to the transport.
    """

    def __init__(self, state: Optional[PresenceState] = None, color_factory: Callable[[], str] = generate_random_color):
        self.state = state if state is not None else PresenceState()
        self.color_factory = color_factory
        self._lock = threading.Lock()
        self._handlers = {
            event_names.CREATE_ROOM: self._dispatch_create_room,
            event_names.JOIN: self._dispatch_join,
            event_names.MOUSE_POSITION: self._dispatch_mouse_position,
        }

    @property
    def registry(self):
        return self.state.registry

    @property
    def directory(self):
        return self.state.directory

    def connect(self, connection_id: str) -> List[Delivery]:
        with self._lock:
            self.registry.connect(connection_id)
        logger.info(f"A user connected {connection_id}")
        return []

    def create_room(self, connection_id: str, room_name: str) -> List[Delivery]:
        with self._lock:
            self.directory.ensure_room(room_name)
            self.directory.add_listener(room_name, connection_id)
        logger.info(f"Room {room_name} created by {connection_id}")
        return []

    def join(self, connection_id: str, room_name: str, username: str) -> List[Delivery]:
        with self._lock:
            color = self.color_factory()
            self.directory.add_member(room_name, connection_id, username, color)
            self.registry.record_join(connection_id, username)
            targets = self.directory.recipients(room_name, exclude=connection_id)
        logger.info(f"User {username} joined room {room_name}")
        message = UserJoinedEvent(username=username, user_id=connection_id, color=color)
        return _fan_out(targets, event_names.USER_JOINED, message)

    def mouse_position(self, connection_id: str, x, y) -> List[Delivery]:
        deliveries = []
        with self._lock:
            username = self.registry.lookup_name(connection_id)
            for room_name in self.directory.rooms_containing(connection_id):
                color = self.directory.member_color(room_name, connection_id)
                targets = self.directory.recipients(room_name, exclude=connection_id)
                message = MousePositionEvent(username=username, x=x, y=y, color=color)
                deliveries.extend(_fan_out(targets, event_names.MOUSE_POSITION, message))
        logger.debug(f"Mouse position from {connection_id} routed to {len(deliveries)} connections")
        return deliveries

    def disconnect(self, connection_id: str) -> List[Delivery]:
        deliveries = []
        with self._lock:
            username = self.registry.lookup_name(connection_id)
            left = UserLeftEvent(user_id=connection_id)
            try:
                for room_name in self.directory.rooms_containing(connection_id):
                    try:
                        deleted = self.directory.remove_member(room_name, connection_id)
                    except Exception as e:
                        logger.error(f"Error removing {connection_id} from room {room_name}: {e}", exc_info=True)
                        continue
                    logger.info(f"User {username} left room {room_name}")
                    if deleted:
                        logger.info(f"Room {room_name} deleted")
                        continue
                    targets = self.directory.recipients(room_name)
                    deliveries.extend(_fan_out(targets, event_names.USER_LEFT, left))
                for room_name in self.directory.rooms_listened_by(connection_id):
                    try:
                        if self.directory.remove_listener(room_name, connection_id):
                            logger.info(f"Room {room_name} deleted")
                    except Exception as e:
                        logger.error(f"Error removing listener {connection_id} from room {room_name}: {e}", exc_info=True)
            finally:
                self.registry.remove(connection_id)
        logger.info(f"User disconnected {connection_id}")
        return deliveries

    def dispatch(self, connection_id: str, event: str, payload: Any) -> List[Delivery]:
        """Route one client event, never raising.

        Unknown events, malformed payloads and handler failures are logged and
        produce no deliveries, so the sender only ever sees "nothing happened".
        """
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug(f"Ignoring unknown event {event!r} from {connection_id}")
            return []
        try:
            return handler(connection_id, payload)
        except ValidationError as e:
            logger.warning(f"Dropping malformed {event} payload from {connection_id}: {e.error_count()} errors")
        except Exception as e:
            logger.error(f"Error handling {event} from {connection_id}: {e}", exc_info=True)
        return []

    def dispatch_disconnect(self, connection_id: str) -> List[Delivery]:
        try:
            return self.disconnect(connection_id)
        except Exception as e:
            logger.error(f"Error cleaning up connection {connection_id}: {e}", exc_info=True)
            return []

    def _dispatch_create_room(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = CreateRoomPayload(room_name=payload)
        return self.create_room(connection_id, request.room_name)

    def _dispatch_join(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = JoinPayload.model_validate(payload)
        return self.join(connection_id, request.room_name, request.username)

    def _dispatch_mouse_position(self, connection_id: str, payload: Any) -> List[Delivery]:
        request = MousePositionPayload.model_validate(payload)
        return self.mouse_position(connection_id, request.x, request.y)
