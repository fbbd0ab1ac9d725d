import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Enum, Text, Integer, Boolean, BigInteger, ForeignKey
from sqlalchemy.orm import relationship
from overlaykit.core.db import Base, JSONType
import enum


class ElementType(str, enum.Enum):
    TITLE = "TITLE"
    COUNTER = "COUNTER"
    TIMER = "TIMER"
    IMAGE = "IMAGE"
    CONTAINER = "CONTAINER"


class Element(Base):
    __tablename__ = "elements"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    overlay_id = Column(
        String, ForeignKey("overlays.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Deleting a parent on its own detaches its children to the root level
    parent_id = Column(
        String, ForeignKey("elements.id", ondelete="SET NULL"), nullable=True, index=True
    )

    name = Column(String, nullable=False)
    type = Column(Enum(ElementType), nullable=False)
    style = Column(JSONType, nullable=False, default=dict)
    position = Column(Integer, nullable=False, default=0)

    title = relationship(
        "TitleData", uselist=False, cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )
    counter = relationship(
        "CounterData", uselist=False, cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )
    timer = relationship(
        "TimerData", uselist=False, cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )
    image = relationship(
        "ImageData", uselist=False, cascade="all, delete-orphan", passive_deletes=True, lazy="selectin"
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )


class TitleData(Base):
    __tablename__ = "element_titles"

    element_id = Column(
        String, ForeignKey("elements.id", ondelete="CASCADE"), primary_key=True
    )
    text = Column(Text, nullable=False, default="New Title")


class CounterData(Base):
    __tablename__ = "element_counters"

    element_id = Column(
        String, ForeignKey("elements.id", ondelete="CASCADE"), primary_key=True
    )
    value = Column(Integer, nullable=False, default=0)


class TimerData(Base):
    __tablename__ = "element_timers"

    element_id = Column(
        String, ForeignKey("elements.id", ondelete="CASCADE"), primary_key=True
    )
    # NULL while stopped
    running_since_utc = Column(DateTime(timezone=True), nullable=True)
    accumulated_elapsed_ms = Column(BigInteger, nullable=False, default=0)
    # Countdown target in milliseconds
    duration = Column(BigInteger, nullable=False, default=0)
    count_down = Column(Boolean, nullable=False, default=False)


class ImageData(Base):
    __tablename__ = "element_images"

    element_id = Column(
        String, ForeignKey("elements.id", ondelete="CASCADE"), primary_key=True
    )
    src = Column(Text, nullable=False, default="")
