"""Expand events into concrete calendar entries.

Recurring events are expanded over a six-month window starting now; dated
events become one all-day span. Calendar end bounds are exclusive, so all-day
spans end on the day after their last date.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Literal

from dateutil.relativedelta import relativedelta
from dateutil.rrule import rrulestr

from deskpress.content.events import DatedEventView, EventView, RecurringEventView, SuspensionView

logger = logging.getLogger(__name__)

WINDOW = relativedelta(months=6)
OCCURRENCE_DURATION = timedelta(hours=2)
DATED_FORMAT = "%B %d, %Y"

_TIME_RE = re.compile(r"(\d+):(\d+)\s*(AM|PM)", re.IGNORECASE)

EntryKind = Literal["recurring", "dated", "suspension"]


@dataclass(frozen=True)
class CalendarEntry:
    id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool
    kind: EntryKind
    event_id: str
    suspended: bool = False


def parse_time_of_day(value: str | None) -> time | None:
    """Parse ``"7:30 PM"`` style times into a 24-hour ``time``."""
    if not value:
        return None
    match = _TIME_RE.search(value)
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    is_pm = match.group(3).upper() == "PM"
    if not 1 <= hours <= 12 or minutes > 59:
        return None

    if is_pm and hours != 12:
        hours += 12
    if not is_pm and hours == 12:
        hours = 0

    return time(hours, minutes)


def parse_event_date(value: str) -> date:
    """Parse the human date format dated events store, e.g. ``January 9, 2026``."""
    return datetime.strptime(value.strip(), DATED_FORMAT).date()


def is_suspended(day: date, suspensions: list[SuspensionView]) -> bool:
    return any(s.start_date <= day <= s.end_date for s in suspensions)


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min)


def expand_recurring(event: RecurringEventView, now: datetime) -> list[CalendarEntry]:
    # Event times are wall-clock times at the venue
    now = now.replace(tzinfo=None)

    if not event.rrule:
        first_of_next_month = (now + relativedelta(months=1)).replace(
            day=1, hour=0, minute=0, second=0, microsecond=0
        )
        return [
            CalendarEntry(
                id=f"{event.id}-placeholder",
                title=f"{event.title} ({event.recurrence})",
                start=first_of_next_month,
                end=first_of_next_month,
                all_day=True,
                kind="recurring",
                event_id=event.id,
            )
        ]

    window_end = now + WINDOW
    try:
        rule = rrulestr(event.rrule, dtstart=_midnight(now.date()), ignoretz=True)
        occurrences = rule.between(_midnight(now.date()), window_end, inc=True)
    except (ValueError, TypeError):
        logger.exception("Error parsing RRULE for %s", event.slug)
        return []

    entries: list[CalendarEntry] = []
    time_of_day = parse_time_of_day(event.time)

    for occurrence in occurrences:
        suspended = is_suspended(occurrence.date(), event.suspensions)
        start = datetime.combine(occurrence.date(), time_of_day) if time_of_day else occurrence
        entries.append(
            CalendarEntry(
                id=f"{event.id}-{int(occurrence.timestamp() * 1000)}",
                title=f"[SUSPENDED] {event.title}" if suspended else event.title,
                start=start,
                end=start + OCCURRENCE_DURATION,
                all_day=False,
                kind="recurring",
                event_id=event.id,
                suspended=suspended,
            )
        )

    for suspension in event.suspensions:
        start = _midnight(suspension.start_date)
        end = _midnight(suspension.end_date)
        if start < window_end and end > now:
            entries.append(
                CalendarEntry(
                    id=f"suspension-{event.id}-{suspension.id}",
                    title=f"{event.title} - {suspension.reason or 'Suspended'}",
                    start=start,
                    end=end + timedelta(days=1),
                    all_day=True,
                    kind="suspension",
                    event_id=event.id,
                )
            )

    return entries


def expand_dated(event: DatedEventView) -> list[CalendarEntry]:
    try:
        start = parse_event_date(event.start_date)
        end = parse_event_date(event.end_date)
    except ValueError:
        logger.exception("Error parsing dates for %s", event.slug)
        return []

    return [
        CalendarEntry(
            id=event.id,
            title=event.title,
            start=_midnight(start),
            end=_midnight(end + timedelta(days=1)),
            all_day=True,
            kind="dated",
            event_id=event.id,
        )
    ]


def build_calendar(events: list[EventView], now: datetime | None = None) -> list[CalendarEntry]:
    now = now or datetime.now()
    entries: list[CalendarEntry] = []
    for event in events:
        match event:
            case RecurringEventView():
                entries.extend(expand_recurring(event, now))
            case DatedEventView():
                entries.extend(expand_dated(event))
    return entries
