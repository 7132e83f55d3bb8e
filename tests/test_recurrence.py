"""Tests for RRULE parsing, rendering and English descriptions."""

import pytest

from deskpress.lib.recurrence import (
    Frequency,
    RecurrenceSpec,
    parse_rrule,
    rule_to_text,
    text_to_spec,
    to_rrule,
)


class TestRuleToText:
    @pytest.mark.parametrize(
        "rrule, expected",
        [
            ("FREQ=DAILY", "Every Day"),
            ("FREQ=WEEKLY;BYDAY=MO", "Every Monday"),
            ("FREQ=WEEKLY;BYDAY=MO,WE", "Every Monday and Wednesday"),
            ("FREQ=WEEKLY;BYDAY=MO,WE,FR", "Every Monday, Wednesday and Friday"),
            ("FREQ=WEEKLY;BYDAY=MO,TU,WE,TH,FR,SA,SU", "Every Day"),
            ("FREQ=MONTHLY;BYDAY=1FR", "Every First Friday of the Month"),
            ("FREQ=MONTHLY;BYDAY=1FR,3FR", "Every First and Third Friday of the Month"),
            ("FREQ=MONTHLY;BYDAY=-1SU", "Every Last Sunday of the Month"),
        ],
    )
    def test_describes_supported_rules(self, rrule, expected):
        assert rule_to_text(rrule) == expected

    @pytest.mark.parametrize("rrule", [None, "", "garbage", "FREQ=YEARLY", "FREQ=WEEKLY", "FREQ=MONTHLY;BYDAY=FR"])
    def test_unparseable_rules_give_empty_text(self, rrule):
        assert rule_to_text(rrule) == ""

    def test_accepts_spec(self):
        spec = RecurrenceSpec(freq=Frequency.MONTHLY, positions=(2, 4), monthly_day="TU")
        assert rule_to_text(spec) == "Every Second and Fourth Tuesday of the Month"

    def test_weekly_spec_without_days_is_empty(self):
        assert rule_to_text(RecurrenceSpec(freq=Frequency.WEEKLY)) == ""


class TestParseAndRender:
    def test_parse_weekly(self):
        spec = parse_rrule("FREQ=WEEKLY;BYDAY=MO,WE")
        assert spec == RecurrenceSpec(freq=Frequency.WEEKLY, weekdays=("MO", "WE"))

    def test_parse_monthly(self):
        spec = parse_rrule("FREQ=MONTHLY;BYDAY=1FR,3FR")
        assert spec.positions == (1, 3)
        assert spec.monthly_day == "FR"

    def test_to_rrule(self):
        assert to_rrule(RecurrenceSpec(freq=Frequency.DAILY)) == "FREQ=DAILY"
        assert to_rrule(RecurrenceSpec(freq=Frequency.WEEKLY, weekdays=("MO", "WE"))) == "FREQ=WEEKLY;BYDAY=MO,WE"
        assert (
            to_rrule(RecurrenceSpec(freq=Frequency.MONTHLY, positions=(1, 3), monthly_day="FR"))
            == "FREQ=MONTHLY;BYDAY=1FR,3FR"
        )

    def test_to_rrule_rejects_incomplete_spec(self):
        with pytest.raises(ValueError):
            to_rrule(RecurrenceSpec(freq=Frequency.MONTHLY, positions=(1,)))


class TestTextToSpec:
    @pytest.mark.parametrize(
        "rrule",
        ["FREQ=DAILY", "FREQ=WEEKLY;BYDAY=TU,TH", "FREQ=MONTHLY;BYDAY=1FR,3FR", "FREQ=MONTHLY;BYDAY=-1SU"],
    )
    def test_inverts_rule_to_text(self, rrule):
        spec = text_to_spec(rule_to_text(rrule))
        assert to_rrule(spec) == rrule

    def test_unknown_sentence(self):
        assert text_to_spec("Every other Blursday") is None
        assert text_to_spec("Sundays at noon") is None
        assert text_to_spec("") is None
