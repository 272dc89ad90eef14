"""Socket.IO transport for the presence relay.

Wire compatible with the socket.io browser client: the sid is the
connection id and event names are used unchanged (`createRoom`, `join`,
`mousePosition` in; `userJoined`, `mousePosition`, `userLeft` out).

Socket.IO rooms are not used. Membership lives in the room directory and
every delivery is emitted to a single sid.
"""

from __future__ import annotations

from typing import Any

import socketio

import event_names
from logging_config import get_logger
from relay import EventRouter
from transport import DeliveryHub

logger = get_logger(__name__)


def build_sio(relay: EventRouter, hub: DeliveryHub, cors_allowed_origins: Any = "*") -> socketio.AsyncServer:
    sio = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=cors_allowed_origins,
        logger=False,
        engineio_logger=False,
    )
    register_handlers(sio, relay, hub)
    return sio


def register_handlers(sio: socketio.AsyncServer, relay: EventRouter, hub: DeliveryHub) -> None:
    def sender_for(sid: str):
        async def send(event: str, payload: dict[str, Any]):
            await sio.emit(event, payload, to=sid)

        return send

    async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
        hub.register(sid, sender_for(sid))
        await hub.deliver(relay.connect(sid))

    async def disconnect(sid: str, *args):
        deliveries = relay.dispatch_disconnect(sid)
        hub.unregister(sid)
        await hub.deliver(deliveries)

    def relay_event(event: str):
        async def handler(sid: str, data: Any = None):
            await hub.deliver(relay.dispatch(sid, event, data))

        return handler

    sio.on("connect", connect)
    sio.on("disconnect", disconnect)
    for event in (event_names.CREATE_ROOM, event_names.JOIN, event_names.MOUSE_POSITION):
        sio.on(event, relay_event(event))
