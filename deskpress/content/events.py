"""Event payloads and read models.

An event is either recurring or dated. Both the write payloads (pydantic,
discriminated on ``type``) and the read views (frozen dataclasses) are
separate classes per variant, so every consumer matches on the class instead
of probing for optional fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Annotated, Literal, assert_never

from litestar.exceptions import ValidationException
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from deskpress.db.models import Event, EventDay, EventSuspension
from deskpress.lib.recurrence import parse_rrule, rule_to_text


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class EventDayData(_Payload):
    day_number: int | None = None
    date: str
    choir: str = ""
    sponsors_pilgrims: str = ""
    area_coordinators: str = ""


class SuspensionData(_Payload):
    start_date: date
    end_date: date
    reason: str | None = None

    @model_validator(mode="after")
    def _check_range(self) -> "SuspensionData":
        if self.end_date < self.start_date:
            raise ValueError("Suspension end date must be on or after its start date")
        return self


class _EventBase(_Payload):
    slug: str = Field(min_length=1)
    title: str = Field(min_length=1)
    venue: str
    address: str
    content: str | None = None
    published: bool = True


class RecurringEventData(_EventBase):
    type: Literal["recurring"] = "recurring"
    recurrence: str = ""
    time: str = Field(pattern=r"(?i)^(1[0-2]|[1-9]):[0-5]\d\s*(AM|PM)$")
    rrule: str | None = None

    @model_validator(mode="after")
    def _fill_recurrence(self) -> "RecurringEventData":
        if self.rrule:
            if parse_rrule(self.rrule) is None:
                raise ValueError(f"Malformed recurrence rule: {self.rrule}")
            if not self.recurrence:
                self.recurrence = rule_to_text(self.rrule)
        if not self.recurrence:
            raise ValueError("Recurring events need a recurrence description or rule")
        return self


class DatedEventData(_EventBase):
    type: Literal["dated"] = "dated"
    start_date: str
    end_date: str
    rosary_time: str | None = None
    parking_info: str | None = None
    days: list[EventDayData] = []


EventData = Annotated[RecurringEventData | DatedEventData, Field(discriminator="type")]

_event_data_adapter: TypeAdapter[RecurringEventData | DatedEventData] = TypeAdapter(EventData)


def parse_event_data(payload: dict) -> RecurringEventData | DatedEventData:
    """Validate a request body against the variant named by its ``type``."""
    try:
        return _event_data_adapter.validate_python(payload)
    except ValidationError as exc:
        raise ValidationException(
            "Invalid event data", extra=exc.errors(include_url=False, include_context=False)
        ) from exc


# ---------------------------------------------------------------------------
# Read views
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DayView:
    day_number: int
    date: str
    choir: str = ""
    sponsors_pilgrims: str = ""
    area_coordinators: str = ""
    id: str | None = None


@dataclass(frozen=True)
class SuspensionView:
    start_date: date
    end_date: date
    reason: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class _EventViewBase:
    id: str
    slug: str
    title: str
    venue: str
    address: str
    content: str | None
    published: bool
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True)
class RecurringEventView(_EventViewBase):
    recurrence: str
    time: str
    rrule: str | None = None
    suspensions: list[SuspensionView] = field(default_factory=list)
    type: Literal["recurring"] = "recurring"


@dataclass(frozen=True)
class DatedEventView(_EventViewBase):
    start_date: str
    end_date: str
    rosary_time: str | None = None
    parking_info: str | None = None
    days: list[DayView] = field(default_factory=list)
    type: Literal["dated"] = "dated"


EventView = RecurringEventView | DatedEventView


def event_view(event: Event) -> EventView:
    """Build the variant view for an ORM event."""
    base = dict(
        id=str(event.id),
        slug=event.slug,
        title=event.title,
        venue=event.venue,
        address=event.address,
        content=event.content,
        published=event.published,
        created_at=event.created_at,
        updated_at=event.updated_at,
    )
    if event.type == "recurring":
        return RecurringEventView(
            **base,
            recurrence=event.recurrence or "",
            time=event.time or "",
            rrule=event.rrule,
            suspensions=[suspension_view(s) for s in event.suspensions],
        )
    if event.type == "dated":
        return DatedEventView(
            **base,
            start_date=event.start_date or "",
            end_date=event.end_date or "",
            rosary_time=event.rosary_time,
            parking_info=event.parking_info,
            days=[day_view(d) for d in event.days],
        )
    raise ValueError(f"Unknown event type: {event.type!r}")


def day_view(day: EventDay) -> DayView:
    return DayView(
        id=str(day.id),
        day_number=day.day_number,
        date=day.date,
        choir=day.choir,
        sponsors_pilgrims=day.sponsors_pilgrims,
        area_coordinators=day.area_coordinators,
    )


def suspension_view(suspension: EventSuspension) -> SuspensionView:
    return SuspensionView(
        id=str(suspension.id),
        start_date=suspension.start_date,
        end_date=suspension.end_date,
        reason=suspension.reason,
    )


def describe(event: EventView) -> str:
    """One-line schedule summary for listings."""
    match event:
        case RecurringEventView():
            return f"{event.recurrence} at {event.time}"
        case DatedEventView():
            return f"{event.start_date} - {event.end_date}"
        case _:
            assert_never(event)


# ---------------------------------------------------------------------------
# Day numbering
# ---------------------------------------------------------------------------


def renumber_days(days: list[DayView]) -> list[DayView]:
    """Number days 1..n in their current order."""
    return [replace(day, day_number=i) for i, day in enumerate(days, start=1)]


def remove_day(days: list[DayView], index: int) -> list[DayView]:
    if not 0 <= index < len(days):
        raise IndexError(f"No day at position {index}")
    return renumber_days(days[:index] + days[index + 1:])


def insert_day(days: list[DayView], index: int, day: DayView) -> list[DayView]:
    index = max(0, min(index, len(days)))
    return renumber_days(days[:index] + [day] + days[index:])
