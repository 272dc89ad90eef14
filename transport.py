import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable

from logging_config import get_logger
from relay import Delivery

logger = get_logger(__name__)

# send(event_name, payload) for one live connection
Sender = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class DeliveryHub:
    """Maps connection ids to the transport that owns them and sends deliveries.

    Sends are best-effort: a failing connection is logged and skipped, it is
    cleaned up when its transport reports the disconnect.
    """

    def __init__(self):
        # Format: {connection_id: sender}
        self._senders: Dict[str, Sender] = {}

    def register(self, connection_id: str, sender: Sender):
        self._senders[connection_id] = sender
        logger.debug(f"Registered sender for connection {connection_id} (local connections: {len(self._senders)})")

    def unregister(self, connection_id: str):
        if self._senders.pop(connection_id, None) is not None:
            logger.debug(f"Unregistered sender for connection {connection_id}")

    def is_registered(self, connection_id: str) -> bool:
        return connection_id in self._senders

    async def send_to(self, connection_id: str, event: str, payload: Dict[str, Any]) -> bool:
        sender = self._senders.get(connection_id)
        if sender is None:
            logger.debug(f"Dropping {event} for unknown connection {connection_id}")
            return False
        try:
            await sender(event, payload)
            return True
        except Exception as e:
            logger.warning(f"Error sending {event} to connection {connection_id}: {e}")
            return False

    async def deliver(self, deliveries: Iterable[Delivery]) -> int:
        """Send all deliveries concurrently. Returns how many went out."""
        send_tasks = [self.send_to(d.target, d.event, d.payload) for d in deliveries]
        if not send_tasks:
            return 0
        results = await asyncio.gather(*send_tasks)
        sent = sum(1 for ok in results if ok)
        logger.debug(f"Delivered {sent}/{len(send_tasks)} events")
        return sent

    def __len__(self) -> int:
        return len(self._senders)
