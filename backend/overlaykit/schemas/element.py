from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_validator

from overlaykit.models.element import ElementType
from overlaykit.schemas.base import CamelModel
from overlaykit.services.timer import as_utc


class TitleOut(CamelModel):
    text: str


class CounterOut(CamelModel):
    value: int


class TimerOut(CamelModel):
    running_since_utc: datetime | None = None
    accumulated_elapsed_ms: int = 0
    duration: int = 0
    count_down: bool = False

    @field_validator("running_since_utc")
    @classmethod
    def _stored_as_utc(cls, value):
        return as_utc(value)


class ImageOut(CamelModel):
    src: str


class ElementOut(CamelModel):
    id: str
    overlay_id: str
    name: str
    type: ElementType
    style: dict[str, Any] = Field(default_factory=dict)
    position: int
    parent_id: str | None = None

    title: TitleOut | None = None
    counter: CounterOut | None = None
    timer: TimerOut | None = None
    image: ImageOut | None = None


# --- requests ---


class ElementCreate(CamelModel):
    name: str | None = None
    type: str | None = None
    parent_id: str | None = None


class ElementUpdate(CamelModel):
    """Partial update: only fields present in the body are applied."""

    name: str | None = None
    style: dict[str, Any] | None = None
    position: int | None = Field(default=None, ge=0)
    parent_id: str | None = None
    data: dict[str, Any] | None = None


class ReorderItem(CamelModel):
    id: str
    position: int
    parent_id: str | None = None


class ReorderRequest(CamelModel):
    elements: list[ReorderItem]
    overlay_id: str


class BulkDeleteRequest(CamelModel):
    ids: list[str]


class TimerActionRequest(CamelModel):
    action: Literal["toggle", "reset", "set_direction", "add_time"]
    count_down: bool | None = None
    delta_ms: int | None = None


# --- typed payload patches (keys not listed here are ignored) ---


class TitlePatch(CamelModel):
    text: str | None = None


class CounterPatch(CamelModel):
    value: int | None = None


class TimerPatch(CamelModel):
    running_since_utc: datetime | None = None
    accumulated_elapsed_ms: int | None = Field(default=None, ge=0)
    duration: int | None = Field(default=None, ge=0)
    count_down: bool | None = None


class ImagePatch(CamelModel):
    src: str | None = None
