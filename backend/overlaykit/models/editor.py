import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from overlaykit.core.db import Base


class EditorGrant(Base):
    """Access to every overlay of ``owner_id``.

    ``editor_id`` stays NULL until a user with ``editor_name`` exists.
    """

    __tablename__ = "editor_grants"
    __table_args__ = (UniqueConstraint("owner_id", "editor_name"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    editor_name = Column(String, nullable=False, index=True)
    editor_id = Column(
        String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class OverlayEditorGrant(Base):
    """Access to a single overlay."""

    __tablename__ = "overlay_editor_grants"
    __table_args__ = (UniqueConstraint("overlay_id", "editor_id"),)

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    overlay_id = Column(
        String, ForeignKey("overlays.id", ondelete="CASCADE"), nullable=False, index=True
    )
    editor_id = Column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
