import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from overlaykit.core.db import Base


class Image(Base):
    __tablename__ = "images"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    filename = Column(String, nullable=False, unique=True)  # stored filename
    original_name = Column(String, nullable=False)
    url = Column(String, nullable=False)

    user_id = Column(
        String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
