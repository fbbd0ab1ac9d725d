from typing import Any

from pydantic import Field

from overlaykit.schemas.base import CamelModel


class PresetElement(CamelModel):
    name: str
    type: str
    style: dict[str, Any] = Field(default_factory=dict)

    # Payload overrides, keyed like the element snapshot
    title: dict[str, Any] | None = None
    counter: dict[str, Any] | None = None
    timer: dict[str, Any] | None = None
    image: dict[str, Any] | None = None

    children: list["PresetElement"] = Field(default_factory=list)


class OverlayPreset(CamelModel):
    id: str
    name: str
    description: str | None = None
    global_style: dict[str, Any] | None = None
    elements: list[PresetElement] = Field(default_factory=list)


class PresetCatalog(CamelModel):
    presets: list[OverlayPreset] = Field(default_factory=list)
