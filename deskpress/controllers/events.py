"""JSON API for events, their day schedules and suspensions, plus the calendar feed."""

from datetime import datetime, UTC
from typing import Any
from uuid import UUID

from litestar import Controller, delete, get, post, put
from litestar.exceptions import NotFoundException
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.auth.guards import admin_guard
from deskpress.auth.session import SessionContext
from deskpress.content.events import (
    EventDayData,
    EventView,
    SuspensionData,
    SuspensionView,
    event_view,
    parse_event_data,
    suspension_view,
)
from deskpress.db.services import event_service
from deskpress.lib.calendar import CalendarEntry, build_calendar


def _require(event: Any, event_id: UUID) -> Any:
    if event is None:
        raise NotFoundException(f"Event {event_id} not found")
    return event


class EventsController(Controller):
    path = "/api/events"
    guards = [admin_guard]

    @get("/")
    async def list_events(self, db_session: AsyncSession, published: bool | None = None) -> list[EventView]:
        return [event_view(e) for e in await event_service.list_events(db_session, published)]

    @get("/calendar")
    async def calendar(self, db_session: AsyncSession) -> list[CalendarEntry]:
        """Recurring occurrences for the next six months plus every dated event."""
        events = [event_view(e) for e in await event_service.list_events(db_session, published=True)]
        return build_calendar(events, datetime.now(UTC))

    @get("/{event_id:uuid}")
    async def get_event(self, db_session: AsyncSession, event_id: UUID) -> EventView:
        return event_view(_require(await event_service.get_event_by_id(db_session, event_id), event_id))

    @post("/")
    async def create_event(
        self, session_context: SessionContext, db_session: AsyncSession, data: dict[str, Any]
    ) -> EventView:
        event = await event_service.create_event(db_session, parse_event_data(data), session_context.user_id)
        return event_view(event)

    @put("/{event_id:uuid}")
    async def update_event(
        self, session_context: SessionContext, db_session: AsyncSession, event_id: UUID, data: dict[str, Any]
    ) -> EventView:
        event = await event_service.update_event(
            db_session, event_id, parse_event_data(data), session_context.user_id
        )
        return event_view(_require(event, event_id))

    @delete("/{event_id:uuid}", status_code=200)
    async def delete_event(self, db_session: AsyncSession, event_id: UUID) -> dict:
        if not await event_service.delete_event(db_session, event_id):
            raise NotFoundException(f"Event {event_id} not found")
        return {"success": True}

    @put("/{event_id:uuid}/days")
    async def replace_days(
        self, db_session: AsyncSession, event_id: UUID, data: list[EventDayData]
    ) -> EventView:
        event = await event_service.replace_event_days(db_session, event_id, data)
        return event_view(_require(event, event_id))

    @post("/{event_id:uuid}/suspensions")
    async def add_suspension(
        self, session_context: SessionContext, db_session: AsyncSession, event_id: UUID, data: SuspensionData
    ) -> SuspensionView:
        suspension = await event_service.add_suspension(
            db_session, event_id, data.start_date, data.end_date, data.reason, session_context.user_id
        )
        return suspension_view(_require(suspension, event_id))

    @delete("/suspensions/{suspension_id:uuid}", status_code=200)
    async def remove_suspension(self, db_session: AsyncSession, suspension_id: UUID) -> dict:
        if not await event_service.remove_suspension(db_session, suspension_id):
            raise NotFoundException(f"Suspension {suspension_id} not found")
        return {"success": True}
