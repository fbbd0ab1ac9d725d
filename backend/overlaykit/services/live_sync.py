"""
Live value sync: low-latency sharing of slider-like values between editors.

While a control is being dragged every change is sent as ``{key, value}``
over the overlay's WebSocket without touching the database. Releasing the
control sends the final value once more and commits it through the normal
element update (which then broadcasts a full snapshot).

Echo suppression: an inbound value is ignored while the local user drags the
same control, and for ``ignore_window_ms`` after the local client last sent
a value for it.

The server side only relays messages (see ``parse_live_message``); the
``SyncedValue`` / ``LiveSyncClient`` classes model the client half and are
what the protocol tests drive.
"""
import json
import logging
import time
from typing import Any, Callable

from pydantic import BaseModel, Field, StrictFloat, StrictInt
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

DEFAULT_IGNORE_WINDOW_MS = 500

Number = StrictInt | StrictFloat


class LiveValueMessage(BaseModel):
    key: str = Field(min_length=1)
    value: Number


def parse_live_message(raw: str | bytes) -> LiveValueMessage | None:
    """Parse one inbound frame; anything that is not ``{key, value}`` gives None."""
    try:
        return LiveValueMessage.model_validate_json(raw)
    except PydanticValidationError:
        return None


def control_key(element_id: str, field: str) -> str:
    return f"{element_id}.{field}"


def split_control_key(key: str) -> tuple[str, str]:
    element_id, _, field = key.partition(".")
    return element_id, field


_PAYLOAD_KEYS = ("title", "counter", "timer", "image")


def snapshot_value(snapshot: dict[str, Any], key: str) -> Any:
    """Committed value of a control in a (camelCase) overlay snapshot.

    The field is looked up in the element's ``style`` first, then in its
    typed payload.
    """
    element_id, field = split_control_key(key)
    for element in snapshot.get("elements", []):
        if element.get("id") != element_id:
            continue
        style = element.get("style") or {}
        if field in style:
            return style[field]
        for payload_key in _PAYLOAD_KEYS:
            payload = element.get(payload_key) or {}
            if field in payload:
                return payload[field]
    return None


class SyncedValue:
    """One synced control (e.g. a font-size slider)."""

    def __init__(
        self,
        key: str,
        initial: float,
        send: Callable[[LiveValueMessage], None],
        on_commit: Callable[[str, float], None] | None = None,
        ignore_window_ms: int = DEFAULT_IGNORE_WINDOW_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.key = key
        self.value = initial
        self.dragging = False
        self.ignore_window_ms = ignore_window_ms
        self._send = send
        self._on_commit = on_commit
        self._clock = clock
        self._last_sent_at: float | None = None

    def begin_drag(self) -> None:
        self.dragging = True

    def change(self, value: float) -> None:
        """Local change: always sent, committed only when not mid-drag."""
        self.value = value
        self._publish()
        if not self.dragging:
            self._commit()

    def end_drag(self) -> None:
        self.dragging = False
        self._publish()
        self._commit()

    def receive(self, value: float) -> bool:
        """Apply a value from another client; returns whether it was adopted."""
        if self.dragging or self._within_ignore_window():
            return False
        self.value = value
        return True

    def sync_from_snapshot(self, value: float | None) -> bool:
        if value is None or self.dragging:
            return False
        self.value = value
        return True

    def _within_ignore_window(self) -> bool:
        if self._last_sent_at is None:
            return False
        return (self._clock() - self._last_sent_at) * 1000 < self.ignore_window_ms

    def _publish(self) -> None:
        self._last_sent_at = self._clock()
        try:
            self._send(LiveValueMessage(key=self.key, value=self.value))
        except Exception as exc:
            # Live values are best-effort; the commit still goes through
            logger.warning(f"Failed to send live value for {self.key}: {exc}")

    def _commit(self) -> None:
        if self._on_commit is not None:
            self._on_commit(self.key, self.value)


class LiveSyncClient:
    """Routes frames from an overlay WebSocket to the registered controls."""

    def __init__(self, on_snapshot: Callable[[dict[str, Any]], None] | None = None):
        self.controls: dict[str, SyncedValue] = {}
        self._on_snapshot = on_snapshot

    def register(self, control: SyncedValue) -> SyncedValue:
        self.controls[control.key] = control
        return control

    def handle_frame(self, raw: str | bytes) -> None:
        message = parse_live_message(raw)
        if message is not None:
            control = self.controls.get(message.key)
            if control is not None:
                control.receive(message.value)
            return

        try:
            payload = json.loads(raw)
        except ValueError:
            logger.debug("Ignoring non-JSON frame")
            return
        if isinstance(payload, dict) and "elements" in payload:
            self.handle_snapshot(payload)

    def handle_snapshot(self, snapshot: dict[str, Any]) -> None:
        for key, control in self.controls.items():
            control.sync_from_snapshot(snapshot_value(snapshot, key))
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)
