"""Tests for event persistence, day schedules and suspensions."""

from datetime import date

import pytest
from litestar.exceptions import ValidationException

from deskpress.content.events import (
    DatedEventView,
    DayView,
    RecurringEventView,
    describe,
    event_view,
    insert_day,
    parse_event_data,
    remove_day,
    renumber_days,
)
from deskpress.db.services import event_service


def _recurring_payload(**overrides) -> dict:
    payload = {
        "type": "recurring",
        "slug": "novena",
        "title": "Novena",
        "venue": "St Mary's",
        "address": "1 Church St",
        "time": "7:30 PM",
        "rrule": "FREQ=WEEKLY;BYDAY=MO",
    }
    payload.update(overrides)
    return payload


def _dated_payload(**overrides) -> dict:
    payload = {
        "type": "dated",
        "slug": "fiesta",
        "title": "Fiesta",
        "venue": "Hall",
        "address": "2 Main St",
        "startDate": "January 9, 2026",
        "endDate": "January 11, 2026",
        "days": [
            {"date": "Friday, January 9", "choir": "Youth"},
            {"date": "Saturday, January 10", "choir": "Adults"},
            {"date": "Sunday, January 11"},
        ],
    }
    payload.update(overrides)
    return payload


class TestParseEventData:
    def test_recurrence_text_filled_from_rule(self):
        data = parse_event_data(_recurring_payload())
        assert data.recurrence == "Every Monday"

    def test_explicit_recurrence_text_is_kept(self):
        data = parse_event_data(_recurring_payload(recurrence="Mondays after Mass"))
        assert data.recurrence == "Mondays after Mass"

    def test_malformed_rule_rejected(self):
        with pytest.raises(ValidationException):
            parse_event_data(_recurring_payload(rrule="FREQ=YEARLY"))

    def test_recurring_without_schedule_rejected(self):
        with pytest.raises(ValidationException):
            parse_event_data(_recurring_payload(rrule=None))

    @pytest.mark.parametrize("value", ["13:30 PM", "7:75 PM", "0:30 AM", "19:30"])
    def test_time_must_be_a_clock_time(self, value):
        with pytest.raises(ValidationException):
            parse_event_data(_recurring_payload(time=value))

    def test_time_is_case_insensitive(self):
        assert parse_event_data(_recurring_payload(time="9:05am")).time == "9:05am"

    def test_variant_fields_do_not_mix(self):
        with pytest.raises(ValidationException):
            parse_event_data(_dated_payload(time="7:30 PM"))

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationException):
            parse_event_data(_dated_payload(type="weekly"))


class TestDayNumbering:
    def _days(self, count: int) -> list[DayView]:
        return [DayView(day_number=i, date=f"Day {i}", choir=f"Choir {i}") for i in range(1, count + 1)]

    def test_remove_day_renumbers(self):
        days = remove_day(self._days(4), 1)

        assert [d.day_number for d in days] == [1, 2, 3]
        assert [d.date for d in days] == ["Day 1", "Day 3", "Day 4"]
        assert [d.choir for d in days] == ["Choir 1", "Choir 3", "Choir 4"]

    def test_remove_out_of_range(self):
        with pytest.raises(IndexError):
            remove_day(self._days(2), 5)

    def test_insert_day(self):
        days = insert_day(self._days(2), 1, DayView(day_number=99, date="Extra"))

        assert [d.date for d in days] == ["Day 1", "Extra", "Day 2"]
        assert [d.day_number for d in days] == [1, 2, 3]

    def test_insert_clamps_index(self):
        days = insert_day(self._days(1), 10, DayView(day_number=0, date="Last"))
        assert days[-1].date == "Last"
        assert days[-1].day_number == 2

    def test_renumber(self):
        days = renumber_days([DayView(day_number=7, date="a"), DayView(day_number=3, date="b")])
        assert [d.day_number for d in days] == [1, 2]


class TestCreateEvent:
    @pytest.mark.asyncio
    async def test_recurring(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_recurring_payload()))
        view = event_view(event)

        assert isinstance(view, RecurringEventView)
        assert view.recurrence == "Every Monday"
        assert describe(view) == "Every Monday at 7:30 PM"
        assert event.start_date is None
        assert event.days == []

    @pytest.mark.asyncio
    async def test_dated_days_numbered_in_order(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_dated_payload()))
        view = event_view(event)

        assert isinstance(view, DatedEventView)
        assert [d.day_number for d in view.days] == [1, 2, 3]
        assert [d.choir for d in view.days] == ["Youth", "Adults", ""]
        assert event.time is None
        assert describe(view) == "January 9, 2026 - January 11, 2026"

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, db_session):
        await event_service.create_event(db_session, parse_event_data(_recurring_payload()))
        with pytest.raises(ValidationException):
            await event_service.create_event(db_session, parse_event_data(_dated_payload(slug="novena")))


class TestUpdateEvent:
    @pytest.mark.asyncio
    async def test_switching_variant_clears_old_fields(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_dated_payload()))

        updated = await event_service.update_event(
            db_session, event.id, parse_event_data(_recurring_payload(slug="fiesta"))
        )

        assert updated.type == "recurring"
        assert updated.start_date is None
        assert updated.end_date is None
        assert updated.days == []
        assert updated.rrule == "FREQ=WEEKLY;BYDAY=MO"

    @pytest.mark.asyncio
    async def test_switching_to_dated_drops_suspensions(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_recurring_payload()))
        await event_service.add_suspension(db_session, event.id, date(2026, 2, 1), date(2026, 2, 8))

        updated = await event_service.update_event(
            db_session, event.id, parse_event_data(_dated_payload(slug="novena"))
        )

        assert updated.suspensions == []
        assert updated.rrule is None
        assert len(updated.days) == 3

    @pytest.mark.asyncio
    async def test_missing_event(self, db_session):
        from uuid import uuid4

        assert await event_service.update_event(db_session, uuid4(), parse_event_data(_dated_payload())) is None


class TestDaysAndSuspensions:
    @pytest.mark.asyncio
    async def test_replace_days_renumbers(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_dated_payload()))
        view = event_view(event)
        remaining = remove_day(view.days, 1)

        payload = parse_event_data(
            _dated_payload(days=[{"date": d.date, "choir": d.choir} for d in remaining])
        ).days
        updated = await event_service.replace_event_days(db_session, event.id, payload)

        assert [(d.day_number, d.date) for d in updated.days] == [
            (1, "Friday, January 9"),
            (2, "Sunday, January 11"),
        ]

    @pytest.mark.asyncio
    async def test_recurring_event_has_no_days(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_recurring_payload()))
        with pytest.raises(ValidationException):
            await event_service.replace_event_days(db_session, event.id, [])

    @pytest.mark.asyncio
    async def test_add_and_remove_suspension(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_recurring_payload()))

        suspension = await event_service.add_suspension(
            db_session, event.id, date(2026, 3, 1), date(2026, 3, 14), reason="Lent"
        )
        assert suspension.reason == "Lent"

        reloaded = await event_service.get_event_by_id(db_session, event.id)
        assert [s.id for s in reloaded.suspensions] == [suspension.id]

        assert await event_service.remove_suspension(db_session, suspension.id) is True
        assert await event_service.remove_suspension(db_session, suspension.id) is False

    @pytest.mark.asyncio
    async def test_dated_event_cannot_be_suspended(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_dated_payload()))
        with pytest.raises(ValidationException):
            await event_service.add_suspension(db_session, event.id, date(2026, 1, 1), date(2026, 1, 2))

    @pytest.mark.asyncio
    async def test_reversed_range_rejected(self, db_session):
        event = await event_service.create_event(db_session, parse_event_data(_recurring_payload()))
        with pytest.raises(ValidationException):
            await event_service.add_suspension(db_session, event.id, date(2026, 1, 5), date(2026, 1, 1))


@pytest.mark.asyncio
async def test_list_events_published_filter(db_session):
    await event_service.create_event(db_session, parse_event_data(_recurring_payload()))
    await event_service.create_event(db_session, parse_event_data(_dated_payload(published=False)))

    assert {e.slug for e in await event_service.list_events(db_session)} == {"novena", "fiesta"}
    assert [e.slug for e in await event_service.list_events(db_session, published=True)] == ["novena"]


@pytest.mark.asyncio
async def test_delete_event(db_session):
    event = await event_service.create_event(db_session, parse_event_data(_recurring_payload()))

    assert await event_service.delete_event(db_session, event.id) is True
    assert await event_service.get_event_by_id(db_session, event.id) is None
