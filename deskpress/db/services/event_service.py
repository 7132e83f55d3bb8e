"""Event service for recurring and dated events, their days and suspensions."""

from datetime import date
from uuid import UUID

from litestar.exceptions import ValidationException
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.content.events import (
    DatedEventData,
    EventData,
    EventDayData,
    RecurringEventData,
)
from deskpress.db.models import Event, EventDay, EventSuspension

RECURRING_FIELDS = ("recurrence", "time", "rrule")
DATED_FIELDS = ("start_date", "end_date", "rosary_time", "parking_info")
COMMON_FIELDS = ("slug", "title", "venue", "address", "content", "published")


async def list_events(
    db_session: AsyncSession,
    published: bool | None = None,
) -> list[Event]:
    """List events newest first, with days and suspensions loaded."""
    query = select(Event).order_by(Event.created_at.desc())
    if published is not None:
        query = query.where(Event.published == published)
    result = await db_session.execute(query)
    return list(result.scalars().all())


async def get_event_by_slug(db_session: AsyncSession, slug: str) -> Event | None:
    result = await db_session.execute(select(Event).where(Event.slug == slug))
    return result.scalar_one_or_none()


async def get_event_by_id(db_session: AsyncSession, event_id: UUID) -> Event | None:
    result = await db_session.execute(select(Event).where(Event.id == event_id))
    return result.scalar_one_or_none()


async def _ensure_slug_free(db_session: AsyncSession, slug: str, exclude_id: UUID | None = None) -> None:
    query = select(Event.id).where(Event.slug == slug)
    if exclude_id is not None:
        query = query.where(Event.id != exclude_id)
    if (await db_session.execute(query)).first() is not None:
        raise ValidationException(f"An event with slug '{slug}' already exists")


def _build_days(days: list[EventDayData]) -> list[EventDay]:
    """Build day rows numbered 1..n in list order."""
    return [
        EventDay(
            day_number=number,
            date=day.date,
            choir=day.choir,
            sponsors_pilgrims=day.sponsors_pilgrims,
            area_coordinators=day.area_coordinators,
        )
        for number, day in enumerate(days, start=1)
    ]


def _apply(event: Event, data: RecurringEventData | DatedEventData) -> None:
    """Copy payload fields onto ``event`` and null out the other variant."""
    for name in COMMON_FIELDS:
        setattr(event, name, getattr(data, name))
    event.type = data.type

    match data:
        case RecurringEventData():
            for name in RECURRING_FIELDS:
                setattr(event, name, getattr(data, name))
            for name in DATED_FIELDS:
                setattr(event, name, None)
            event.days = []
        case DatedEventData():
            for name in DATED_FIELDS:
                setattr(event, name, getattr(data, name))
            for name in RECURRING_FIELDS:
                setattr(event, name, None)
            event.suspensions = []
            event.days = _build_days(data.days)


async def _commit(db_session: AsyncSession, event: Event, action: str) -> Event:
    try:
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ValidationException(f"Failed to {action} event: {exc.orig}") from exc

    result = await db_session.execute(
        select(Event).where(Event.id == event.id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def create_event(
    db_session: AsyncSession,
    data: EventData,
    actor_id: UUID | None = None,
) -> Event:
    await _ensure_slug_free(db_session, data.slug)

    event = Event(created_by=actor_id, last_modified_by=actor_id, days=[], suspensions=[])
    _apply(event, data)
    db_session.add(event)
    return await _commit(db_session, event, "create")


async def update_event(
    db_session: AsyncSession,
    event_id: UUID,
    data: EventData,
    actor_id: UUID | None = None,
) -> Event | None:
    """Replace an event's fields. Switching variant drops the old variant's data.

    Returns:
        Updated Event object or None if not found
    """
    event = await get_event_by_id(db_session, event_id)
    if not event:
        return None

    if data.slug != event.slug:
        await _ensure_slug_free(db_session, data.slug, exclude_id=event_id)

    if event.days:
        # Flush the removals first so day numbers can be reused
        event.days = []
        await db_session.flush()

    _apply(event, data)
    event.last_modified_by = actor_id
    return await _commit(db_session, event, "update")


async def delete_event(db_session: AsyncSession, event_id: UUID) -> bool:
    event = await get_event_by_id(db_session, event_id)
    if not event:
        return False
    await db_session.delete(event)
    await db_session.commit()
    return True


async def replace_event_days(
    db_session: AsyncSession,
    event_id: UUID,
    days: list[EventDayData],
) -> Event | None:
    """Replace a dated event's schedule, renumbering days 1..n in given order."""
    event = await get_event_by_id(db_session, event_id)
    if not event:
        return None
    if event.type != "dated":
        raise ValidationException("Only dated events have a day schedule")

    # Flush the removals first so day numbers can be reused
    event.days = []
    await db_session.flush()
    event.days = _build_days(days)
    return await _commit(db_session, event, "update")


async def add_suspension(
    db_session: AsyncSession,
    event_id: UUID,
    start_date: date,
    end_date: date,
    reason: str | None = None,
    actor_id: UUID | None = None,
) -> EventSuspension | None:
    """Suspend a recurring event over ``[start_date, end_date]``.

    Returns:
        The new suspension, or None if the event does not exist
    """
    event = await get_event_by_id(db_session, event_id)
    if not event:
        return None
    if event.type != "recurring":
        raise ValidationException("Only recurring events can be suspended")
    if end_date < start_date:
        raise ValidationException("Suspension end date must be on or after its start date")

    suspension = EventSuspension(
        event_id=event.id,
        start_date=start_date,
        end_date=end_date,
        reason=reason or None,
        created_by=actor_id,
    )
    event.suspensions.append(suspension)
    await db_session.commit()
    return suspension


async def remove_suspension(db_session: AsyncSession, suspension_id: UUID) -> bool:
    suspension = await db_session.get(EventSuspension, suspension_id)
    if not suspension:
        return False
    await db_session.delete(suspension)
    await db_session.commit()
    return True
