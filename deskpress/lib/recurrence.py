"""Recurrence rules: structured spec, RFC 5545 RRULE strings and English text.

Only the subset the event editor produces is supported: daily, weekly on a
set of weekdays, and monthly on ordinal weekdays (``1FR,3FR`` / ``-1SU``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


class Frequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


WEEKDAY_NAMES: dict[str, str] = {
    "MO": "Monday",
    "TU": "Tuesday",
    "WE": "Wednesday",
    "TH": "Thursday",
    "FR": "Friday",
    "SA": "Saturday",
    "SU": "Sunday",
}

POSITION_NAMES: dict[int, str] = {
    1: "First",
    2: "Second",
    3: "Third",
    4: "Fourth",
    5: "Fifth",
    -1: "Last",
}

_FREQ_RE = re.compile(r"FREQ=(\w+)")
_WEEKLY_BYDAY_RE = re.compile(r"BYDAY=([A-Z,]+)")
_MONTHLY_BYDAY_RE = re.compile(r"BYDAY=([-\d,A-Z]+)")
_POSITIONED_DAY_RE = re.compile(r"^(-?\d+)([A-Z]{2})$")


@dataclass(frozen=True)
class RecurrenceSpec:
    freq: Frequency
    weekdays: tuple[str, ...] = ()
    positions: tuple[int, ...] = ()
    monthly_day: str | None = None

    def is_complete(self) -> bool:
        if self.freq is Frequency.DAILY:
            return True
        if self.freq is Frequency.WEEKLY:
            return bool(self.weekdays) and all(d in WEEKDAY_NAMES for d in self.weekdays)
        return (
            bool(self.positions)
            and all(p in POSITION_NAMES for p in self.positions)
            and self.monthly_day in WEEKDAY_NAMES
        )


def _join_english(items: list[str]) -> str:
    if len(items) == 1:
        return items[0]
    return f"{', '.join(items[:-1])} and {items[-1]}"


def parse_rrule(rrule: str | None) -> RecurrenceSpec | None:
    """Parse an RRULE string into a spec; ``None`` when it cannot be understood."""
    if not rrule:
        return None

    freq_match = _FREQ_RE.search(rrule)
    if not freq_match:
        return None

    try:
        freq = Frequency(freq_match.group(1))
    except ValueError:
        return None

    if freq is Frequency.DAILY:
        return RecurrenceSpec(freq=freq)

    if freq is Frequency.WEEKLY:
        byday = _WEEKLY_BYDAY_RE.search(rrule)
        if not byday:
            return None
        days = tuple(d for d in byday.group(1).split(",") if d)
        return RecurrenceSpec(freq=freq, weekdays=days)

    byday = _MONTHLY_BYDAY_RE.search(rrule)
    if not byday:
        return None

    positions: list[int] = []
    monthly_day = None
    for part in byday.group(1).split(","):
        match = _POSITIONED_DAY_RE.match(part)
        if match:
            positions.append(int(match.group(1)))
            monthly_day = match.group(2)

    if not positions:
        return None
    return RecurrenceSpec(freq=freq, positions=tuple(positions), monthly_day=monthly_day)


def to_rrule(spec: RecurrenceSpec) -> str:
    """Render a spec as an RRULE string (without the ``RRULE:`` prefix)."""
    if not spec.is_complete():
        raise ValueError("Incomplete recurrence rule")

    if spec.freq is Frequency.DAILY:
        return "FREQ=DAILY"
    if spec.freq is Frequency.WEEKLY:
        return f"FREQ=WEEKLY;BYDAY={','.join(spec.weekdays)}"
    byday = ",".join(f"{pos}{spec.monthly_day}" for pos in spec.positions)
    return f"FREQ=MONTHLY;BYDAY={byday}"


def rule_to_text(rule: RecurrenceSpec | str | None) -> str:
    """Describe a rule in English, e.g. "Every First and Third Friday of the Month".

    Returns an empty string for anything unparseable or incomplete.
    """
    spec = parse_rrule(rule) if isinstance(rule, str) or rule is None else rule
    if spec is None:
        return ""

    if spec.freq is Frequency.DAILY:
        return "Every Day"

    if spec.freq is Frequency.WEEKLY:
        if not spec.weekdays:
            return ""
        if len(set(spec.weekdays)) == 7:
            return "Every Day"
        names = [WEEKDAY_NAMES.get(day, day) for day in spec.weekdays]
        return f"Every {_join_english(names)}"

    if not spec.positions or not spec.monthly_day:
        return ""
    position_names = [POSITION_NAMES[p] for p in spec.positions if p in POSITION_NAMES]
    if not position_names:
        return ""
    day_name = WEEKDAY_NAMES.get(spec.monthly_day, spec.monthly_day)
    return f"Every {_join_english(position_names)} {day_name} of the Month"


_NAME_TO_WEEKDAY = {name: code for code, name in WEEKDAY_NAMES.items()}
_NAME_TO_POSITION = {name: pos for pos, name in POSITION_NAMES.items()}
_LIST_SPLIT_RE = re.compile(r",\s*|\s+and\s+")


def text_to_spec(text: str | None) -> RecurrenceSpec | None:
    """Inverse of ``rule_to_text`` for the sentences it produces."""
    if not text:
        return None

    text = " ".join(text.split())
    if text == "Every Day":
        return RecurrenceSpec(freq=Frequency.DAILY)
    if not text.startswith("Every "):
        return None
    body = text[len("Every "):]

    if body.endswith(" of the Month"):
        body = body[: -len(" of the Month")]
        head, _, day_name = body.rpartition(" ")
        weekday = _NAME_TO_WEEKDAY.get(day_name)
        parts = [p for p in _LIST_SPLIT_RE.split(head) if p]
        positions = [_NAME_TO_POSITION.get(p) for p in parts]
        if weekday is None or not positions or None in positions:
            return None
        return RecurrenceSpec(
            freq=Frequency.MONTHLY, positions=tuple(positions), monthly_day=weekday
        )

    days = [_NAME_TO_WEEKDAY.get(p) for p in _LIST_SPLIT_RE.split(body) if p]
    if not days or None in days:
        return None
    return RecurrenceSpec(freq=Frequency.WEEKLY, weekdays=tuple(days))
