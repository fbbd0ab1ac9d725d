"""
Realtime broadcast channel.

Every accepted write to an overlay publishes the complete overlay snapshot
to ``overlay-{overlayId}``; subscribers replace their state wholesale. The
same connections carry ephemeral live-sync messages between editors.
"""
import asyncio
import logging

from fastapi import WebSocket

from overlaykit.schemas.element import ElementOut
from overlaykit.schemas.overlay import OverlayOut
from overlaykit.services.repository import Repository

logger = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 5.0


def topic_for(overlay_id: str) -> str:
    return f"overlay-{overlay_id}"


def build_overlay_snapshot(repo: Repository, overlay_id: str) -> OverlayOut | None:
    overlay = repo.find_overlay(overlay_id)
    if overlay is None:
        return None
    elements = repo.find_elements_by_overlay(overlay_id)
    return OverlayOut(
        id=overlay.id,
        name=overlay.name,
        description=overlay.description,
        global_style=overlay.global_style or {},
        user_id=overlay.user_id,
        elements=[ElementOut.model_validate(element) for element in elements],
    )


class RealtimeHub:
    """Topic -> connected WebSockets, all on the event loop.

    Snapshot delivery runs in background tasks so a slow subscriber never
    holds up the write that caused it. ``drain`` waits for pending deliveries.
    """

    def __init__(self, send_timeout: float = SEND_TIMEOUT_SECONDS):
        self.send_timeout = send_timeout
        self._topics: dict[str, set[WebSocket]] = {}
        self._pending: set[asyncio.Task] = set()

    async def connect(self, topic: str, websocket: WebSocket) -> None:
        # Registered before the handshake completes so no broadcast is missed
        self._topics.setdefault(topic, set()).add(websocket)
        await websocket.accept()
        logger.info(f"Subscriber joined {topic} ({self.subscriber_count(topic)} connected)")

    def disconnect(self, topic: str, websocket: WebSocket) -> None:
        subscribers = self._topics.get(topic)
        if not subscribers:
            return
        subscribers.discard(websocket)
        if not subscribers:
            del self._topics[topic]
        logger.info(f"Subscriber left {topic}")

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    async def _send(self, topic: str, websocket: WebSocket, message: str) -> bool:
        try:
            await asyncio.wait_for(websocket.send_text(message), timeout=self.send_timeout)
            return True
        except Exception as exc:
            logger.warning(f"Dropping subscriber of {topic} after failed send: {exc!r}")
            self.disconnect(topic, websocket)
            return False

    async def publish(self, topic: str, message: str, exclude: WebSocket | None = None) -> int:
        """Send ``message`` to every subscriber of ``topic`` concurrently; returns deliveries.

        A failed or timed out send drops that connection and never raises.
        """
        targets = [ws for ws in list(self._topics.get(topic, ())) if ws is not exclude]
        if not targets:
            return 0
        results = await asyncio.gather(*(self._send(topic, ws, message) for ws in targets))
        return sum(results)

    def _on_delivery_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Snapshot delivery failed: {exc!r}")

    async def broadcast_overlay(self, repo: Repository, overlay_id: str) -> OverlayOut | None:
        """Build the snapshot now and deliver it in the background."""
        snapshot = build_overlay_snapshot(repo, overlay_id)
        if snapshot is None:
            return None
        topic = topic_for(overlay_id)
        task = asyncio.create_task(self.publish(topic, snapshot.model_dump_json(by_alias=True)))
        self._pending.add(task)
        task.add_done_callback(self._on_delivery_done)
        logger.debug(f"Scheduled snapshot of {topic} for {self.subscriber_count(topic)} subscriber(s)")
        return snapshot

    async def drain(self) -> None:
        """Wait until every scheduled snapshot delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


hub = RealtimeHub()
