"""
Overlay presets: a JSON catalogue shipped with the package.

A preset's elements may nest through ``children``; ``flatten_preset_elements``
turns that tree into rows the repository can insert parents-first.
"""
import logging
import uuid
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError as PydanticValidationError

from overlaykit.core.config import get_settings
from overlaykit.core.errors import OverlayKitError, ServiceError, ValidationError
from overlaykit.models.element import ElementType
from overlaykit.schemas.preset import OverlayPreset, PresetCatalog, PresetElement
from overlaykit.services.payloads import PAYLOAD_ATTRIBUTE, parse_element_type, payload_with_overrides

logger = logging.getLogger(__name__)

settings = get_settings()


def load_presets(path: str | None = None) -> PresetCatalog:
    presets_path = Path(path or settings.PRESETS_PATH)
    try:
        return PresetCatalog.model_validate_json(presets_path.read_bytes())
    except (OSError, PydanticValidationError) as exc:
        logger.error(f"Error reading presets from {presets_path}: {exc}")
        raise ServiceError("Failed to load presets")


def find_preset(preset_id: str, path: str | None = None) -> OverlayPreset | None:
    for preset in load_presets(path).presets:
        if preset.id == preset_id:
            return preset
    return None


def flatten_preset_elements(elements: Sequence[PresetElement]) -> list[dict[str, Any]]:
    """Pre-order rows with fresh ids; siblings are numbered 0..n-1."""
    rows: list[dict[str, Any]] = []

    def visit(siblings: Sequence[PresetElement], parent_id: str | None) -> None:
        for position, element in enumerate(siblings):
            try:
                element_type = parse_element_type(element.type)
            except OverlayKitError:
                logger.error(f"Preset element {element.name!r} has unknown type {element.type!r}")
                raise ServiceError("Failed to load presets")
            if element.children and element_type != ElementType.CONTAINER:
                logger.error(f"Preset element {element.name!r} has children but is not a container")
                raise ServiceError("Failed to load presets")

            overrides = None
            if element_type in PAYLOAD_ATTRIBUTE:
                overrides = getattr(element, PAYLOAD_ATTRIBUTE[element_type])
            try:
                payload = payload_with_overrides(element_type, overrides)
            except ValidationError:
                logger.error(f"Preset element {element.name!r} has an invalid payload")
                raise ServiceError("Failed to load presets")

            element_id = str(uuid.uuid4())
            rows.append(
                {
                    "id": element_id,
                    "name": element.name,
                    "type": element_type,
                    "style": dict(element.style),
                    "position": position,
                    "parent_id": parent_id,
                    "payload": payload,
                }
            )
            visit(element.children, element_id)

    visit(elements, None)
    return rows
