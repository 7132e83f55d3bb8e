from datetime import date
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from deskpress.db.base import Base


EVENT_TYPES = ("recurring", "dated")


class Event(Base):
    """Calendar event; ``type`` selects which variant columns are populated."""

    __tablename__ = "events"

    slug: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    type: Mapped[str] = mapped_column(
        Enum(*EVENT_TYPES, name="event_type"), nullable=False, index=True
    )

    # Recurring variant
    recurrence: Mapped[str | None] = mapped_column(Text, nullable=True)
    time: Mapped[str | None] = mapped_column(String(32), nullable=True)
    rrule: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Dated variant
    start_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    end_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    rosary_time: Mapped[str | None] = mapped_column(String(64), nullable=True)
    parking_info: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Common fields
    venue: Mapped[str] = mapped_column(String(500), nullable=False)
    address: Mapped[str] = mapped_column(String(1000), nullable=False)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # Tracking
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    last_modified_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    days: Mapped[list["EventDay"]] = relationship(
        "EventDay",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventDay.day_number",
        lazy="selectin",
    )
    suspensions: Mapped[list["EventSuspension"]] = relationship(
        "EventSuspension",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventSuspension.start_date",
        lazy="selectin",
    )


class EventDay(Base):
    """One day of a dated event's schedule."""

    __tablename__ = "event_days"

    event_id: Mapped[UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event: Mapped[Event] = relationship(Event, back_populates="days")
    day_number: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[str] = mapped_column(String(128), nullable=False)
    choir: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    sponsors_pilgrims: Mapped[str] = mapped_column(Text, nullable=False, default="")
    area_coordinators: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (UniqueConstraint("event_id", "day_number", name="unique_event_day"),)


class EventSuspension(Base):
    """Date range during which a recurring event does not take place."""

    __tablename__ = "event_suspensions"

    event_id: Mapped[UUID] = mapped_column(
        ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    event: Mapped[Event] = relationship(Event, back_populates="suspensions")
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="valid_suspension_dates"),
    )
