"""
Typed payloads: one variant per element type, CONTAINER has none.

Payload values travel as plain dicts keyed by the ORM column names so the
repository can apply them without knowing the variant rules.
"""
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from overlaykit.core.errors import ValidationError
from overlaykit.models.element import ElementType
from overlaykit.schemas.element import CounterPatch, ImagePatch, TimerPatch, TitlePatch
from overlaykit.services.timer import TimerState, as_utc

PAYLOAD_ATTRIBUTE = {
    ElementType.TITLE: "title",
    ElementType.COUNTER: "counter",
    ElementType.TIMER: "timer",
    ElementType.IMAGE: "image",
}

_PATCH_MODELS = {
    ElementType.TITLE: TitlePatch,
    ElementType.COUNTER: CounterPatch,
    ElementType.TIMER: TimerPatch,
    ElementType.IMAGE: ImagePatch,
}

# Only these payload columns accept an explicit null
_NULLABLE_FIELDS = {"running_since_utc"}


def parse_element_type(raw: Any) -> ElementType:
    try:
        return ElementType(raw)
    except ValueError:
        raise ValidationError("Invalid element type")


def default_payload(element_type: ElementType) -> dict[str, Any] | None:
    if element_type == ElementType.TITLE:
        return {"text": "New Title"}
    if element_type == ElementType.COUNTER:
        return {"value": 0}
    if element_type == ElementType.TIMER:
        return {
            "running_since_utc": None,
            "accumulated_elapsed_ms": 0,
            "duration": 0,
            "count_down": False,
        }
    if element_type == ElementType.IMAGE:
        return {"src": ""}
    return None


def parse_payload_patch(element_type: ElementType, data: dict[str, Any] | None) -> dict[str, Any]:
    """Keep the keys of ``data`` that belong to ``element_type``'s payload.

    Keys of other variants are dropped (a ``value`` sent to a TITLE does
    nothing); a known key with a wrongly typed value is rejected.
    """
    model = _PATCH_MODELS.get(element_type)
    if model is None or not data:
        return {}
    try:
        patch = model.model_validate(data)
    except PydanticValidationError:
        raise ValidationError("Invalid element data")

    values = {}
    for field in patch.model_fields_set:
        value = getattr(patch, field)
        if value is None and field not in _NULLABLE_FIELDS:
            continue
        values[field] = value
    return values


def payload_with_overrides(
    element_type: ElementType, overrides: dict[str, Any] | None
) -> dict[str, Any] | None:
    payload = default_payload(element_type)
    if payload is None:
        return None
    payload.update(parse_payload_patch(element_type, overrides))
    return payload


def timer_state(timer) -> TimerState:
    if timer is None:
        return TimerState()
    return TimerState(
        running_since_utc=as_utc(timer.running_since_utc),
        accumulated_elapsed_ms=timer.accumulated_elapsed_ms or 0,
        duration=timer.duration or 0,
        count_down=bool(timer.count_down),
    )


def timer_values(state: TimerState) -> dict[str, Any]:
    return {
        "running_since_utc": state.running_since_utc,
        "accumulated_elapsed_ms": state.accumulated_elapsed_ms,
        "duration": state.duration,
        "count_down": state.count_down,
    }
