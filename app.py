from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
import socketio
import json
import uuid
from typing import Optional

from constants import CORS_ALLOWED_ORIGINS, LOG_FILE, LOG_LEVEL
import event_names
from logging_config import get_logger, setup_logging
from relay import EventRouter
from routers.rooms import rooms_router
from sio import build_sio
from transport import DeliveryHub

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


def create_app(relay: Optional[EventRouter] = None, hub: Optional[DeliveryHub] = None) -> FastAPI:
    """Build the HTTP/WebSocket application around one relay instance.

    The Socket.IO server sharing the same relay and hub is attached as
    `app.state.sio`; wrap it with `socketio.ASGIApp` to serve both.
    """
    relay = relay if relay is not None else EventRouter()
    hub = hub if hub is not None else DeliveryHub()

    api = FastAPI(title="Cursor Presence Relay")

    # Configure CORS
    api.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    api.state.relay = relay
    api.state.hub = hub
    sio_origins = "*" if "*" in CORS_ALLOWED_ORIGINS else CORS_ALLOWED_ORIGINS
    api.state.sio = build_sio(relay, hub, cors_allowed_origins=sio_origins)

    api.include_router(rooms_router)

    @api.get("/")
    async def index():
        return "Cursor presence relay is running"

    @api.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Plain WebSocket transport.

        Frames are JSON objects: {"event": "join", "data": {"roomName": ..., "username": ...}}.
        Outbound events use the same envelope.
        """
        await websocket.accept()
        connection_id = str(uuid.uuid4())

        async def send(event: str, payload: dict):
            await websocket.send_text(json.dumps({
                event_names.FRAME_EVENT_KEY: event,
                event_names.FRAME_DATA_KEY: payload,
            }))

        hub.register(connection_id, send)
        await hub.deliver(relay.connect(connection_id))

        message_count = 0
        try:
            while True:
                data = await websocket.receive_text()
                message_count += 1
                logger.debug(f"Received message #{message_count} from connection {connection_id}")

                try:
                    frame = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning(f"Ignoring non-JSON frame from connection {connection_id}")
                    continue
                if not isinstance(frame, dict) or not isinstance(frame.get(event_names.FRAME_EVENT_KEY), str):
                    logger.warning(f"Ignoring frame without an event name from connection {connection_id}")
                    continue

                deliveries = relay.dispatch(
                    connection_id,
                    frame[event_names.FRAME_EVENT_KEY],
                    frame.get(event_names.FRAME_DATA_KEY),
                )
                await hub.deliver(deliveries)
        except WebSocketDisconnect:
            logger.info(f"WebSocket disconnected normally for connection {connection_id}")
        except Exception as e:
            logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
        finally:
            deliveries = relay.dispatch_disconnect(connection_id)
            hub.unregister(connection_id)
            await hub.deliver(deliveries)

    logger.info("FastAPI application initialized")
    return api


def create_asgi_app(relay: Optional[EventRouter] = None, hub: Optional[DeliveryHub] = None) -> socketio.ASGIApp:
    api = create_app(relay, hub)
    return socketio.ASGIApp(api.state.sio, other_asgi_app=api)


# Socket.IO answers on /socket.io, everything else falls through to FastAPI
app = create_asgi_app()
