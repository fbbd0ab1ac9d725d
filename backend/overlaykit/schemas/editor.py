from datetime import datetime

from overlaykit.schemas.base import CamelModel


class EditorGrantOut(CamelModel):
    id: str
    owner_id: str
    editor_name: str
    editor_id: str | None = None
    created_at: datetime


class OverlayEditorGrantOut(CamelModel):
    id: str
    overlay_id: str
    editor_id: str
    created_at: datetime


class UserOut(CamelModel):
    id: str
    name: str


class EditorCreate(CamelModel):
    display_name: str | None = None
