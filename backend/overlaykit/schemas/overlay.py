from typing import Any

from pydantic import Field

from overlaykit.schemas.base import CamelModel
from overlaykit.schemas.element import ElementOut


class OverlayOut(CamelModel):
    """Full overlay snapshot, as returned to editors and broadcast to subscribers."""

    id: str
    name: str
    description: str | None = None
    global_style: dict[str, Any] = Field(default_factory=dict)
    user_id: str
    elements: list[ElementOut] = Field(default_factory=list)


class PublicOverlayOut(CamelModel):
    """What an unauthenticated display (OBS browser source) gets to see."""

    id: str
    name: str
    global_style: dict[str, Any] = Field(default_factory=dict)
    elements: list[ElementOut] = Field(default_factory=list)


class OverlayCreate(CamelModel):
    name: str | None = None
    description: str | None = None
    preset_id: str | None = None
    # Legacy form: one overlay with a single element
    type: str | None = None
    element_name: str | None = None


class OverlayUpdate(CamelModel):
    name: str | None = None
    description: str | None = None
    global_style: dict[str, Any] | None = None
