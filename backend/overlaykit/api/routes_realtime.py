import logging

from fastapi import APIRouter, Depends, WebSocket, status

from overlaykit.api.deps import get_hub
from overlaykit.services.live_sync import parse_live_message
from overlaykit.services.realtime import RealtimeHub, topic_for

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def overlay_socket(
    websocket: WebSocket,
    overlayId: str | None = None,
    hub: RealtimeHub = Depends(get_hub),
):
    """
    Subscribe to one overlay.
    Server -> client: full overlay snapshots after every write.
    Client <-> client: `{key, value}` live-sync messages, relayed to the
    other subscribers of the same overlay. Text and binary frames are both
    accepted; anything unparseable is dropped.
    """
    if not overlayId:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    topic = topic_for(overlayId)
    await hub.connect(topic, websocket)
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            raw = frame.get("text") or frame.get("bytes")
            message = parse_live_message(raw) if raw else None
            if message is None:
                logger.debug(f"Dropping malformed frame on {topic}")
                continue
            await hub.publish(topic, message.model_dump_json(), exclude=websocket)
    finally:
        hub.disconnect(topic, websocket)
