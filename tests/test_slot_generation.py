from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time

from app.core.enums import LeaveStatusEnum
from app.modules.scheduling.slots import (
    ExplicitAvailability,
    LegacyDailyAvailability,
    WindowRule,
    apply_leave_overlay,
    day_of_week,
    find_rule_for_time,
    generate_slots,
    leave_blocks_time,
    resolve_availability,
    rules_for_day,
)

MONDAY = date(2026, 3, 2)


@dataclass
class FakeRule:
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int = 30
    buffer_minutes: int = 0
    max_appointments_per_slot: int = 1


@dataclass
class FakeProfile:
    available_days: list[str] | None
    available_from: time | None = None
    available_to: time | None = None


@dataclass
class FakeLeave:
    status: LeaveStatusEnum
    is_full_day: bool = True
    start_time: time | None = None
    end_time: time | None = None


def make_rule(start: time, end: time, duration: int = 30, buffer: int = 0, capacity: int = 1) -> WindowRule:
    return WindowRule(
        day_of_week=1,
        start_time=start,
        end_time=end,
        slot_duration_minutes=duration,
        buffer_minutes=buffer,
        max_appointments_per_slot=capacity,
    )


def test_day_of_week_starts_on_sunday() -> None:
    assert day_of_week(date(2026, 3, 1)) == 0
    assert day_of_week(MONDAY) == 1
    assert day_of_week(date(2026, 3, 7)) == 6


def test_morning_window_with_one_booked_slot() -> None:
    rule = make_rule(time(9, 0), time(10, 0))

    slots = generate_slots([rule], {time(9, 30): 1})

    assert [(slot.time, slot.available) for slot in slots] == [
        (time(9, 0), True),
        (time(9, 30), False),
    ]
    assert all(slot.capacity == 1 for slot in slots)


def test_capacity_two_stays_available_until_full() -> None:
    rule = make_rule(time(9, 0), time(10, 0), capacity=2)

    one_booked = generate_slots([rule], {time(9, 0): 1})
    two_booked = generate_slots([rule], {time(9, 0): 2})

    assert one_booked[0].available is True
    assert two_booked[0].available is False
    assert two_booked[0].capacity == 2


def test_buffer_extends_the_step() -> None:
    rule = make_rule(time(9, 0), time(11, 0), duration=20, buffer=10)

    slots = generate_slots([rule], {})

    assert [slot.time for slot in slots] == [time(9, 0), time(9, 30), time(10, 0), time(10, 30)]
    assert all(slot.buffer_minutes == 10 for slot in slots)


def test_last_slot_must_fit_inside_window() -> None:
    rule = make_rule(time(9, 0), time(9, 50), duration=20, buffer=5)

    slots = generate_slots([rule], {})

    assert [slot.time for slot in slots] == [time(9, 0), time(9, 25)]


def test_window_shorter_than_duration_yields_nothing() -> None:
    rule = make_rule(time(9, 0), time(9, 15), duration=30)

    assert generate_slots([rule], {}) == []


def test_no_rules_yields_no_slots() -> None:
    assert generate_slots([], {time(9, 0): 3}) == []


def test_non_positive_step_falls_back_to_duration() -> None:
    rule = make_rule(time(9, 0), time(10, 0), duration=15, buffer=-15)

    slots = generate_slots([rule], {})

    assert [slot.time for slot in slots] == [time(9, 0), time(9, 15), time(9, 30), time(9, 45)]


def test_rules_are_concatenated_in_given_order() -> None:
    afternoon = make_rule(time(14, 0), time(15, 0))
    morning = make_rule(time(9, 0), time(10, 0))

    slots = generate_slots([afternoon, morning], {})

    assert [slot.time for slot in slots] == [time(14, 0), time(14, 30), time(9, 0), time(9, 30)]


def test_overlapping_rules_produce_duplicate_times() -> None:
    first = make_rule(time(9, 0), time(10, 0))
    second = make_rule(time(9, 30), time(10, 30))

    slots = generate_slots([first, second], {})

    assert [slot.time for slot in slots].count(time(9, 30)) == 2


def test_generation_is_deterministic() -> None:
    rules = [make_rule(time(8, 0), time(12, 0), duration=15, buffer=5, capacity=3)]
    counts = {time(8, 20): 3, time(9, 0): 1}

    assert generate_slots(rules, counts) == generate_slots(rules, counts)


def test_explicit_rules_win_over_legacy_profile() -> None:
    profile = FakeProfile(available_days=["Monday"], available_from=time(8, 0), available_to=time(12, 0))
    explicit = [FakeRule(day_of_week=1, start_time=time(9, 0, 45), end_time=time(10, 0))]

    availability = resolve_availability(explicit, profile)

    assert isinstance(availability, ExplicitAvailability)
    rules = rules_for_day(availability, 1)
    assert rules[0].start_time == time(9, 0)


def test_legacy_profile_used_when_no_explicit_rules() -> None:
    profile = FakeProfile(available_days=["monday", "Wednesday"])

    availability = resolve_availability([], profile)

    assert isinstance(availability, LegacyDailyAvailability)
    rules = rules_for_day(availability, day_of_week(MONDAY))
    assert len(rules) == 1
    assert rules[0].start_time == time(9, 0)
    assert rules[0].end_time == time(17, 0)
    assert rules[0].slot_duration_minutes == 30
    assert rules[0].max_appointments_per_slot == 1
    assert len(generate_slots(rules, {})) == 16


def test_legacy_profile_uses_its_own_range() -> None:
    availability = LegacyDailyAvailability(days=("MONDAY",), available_from=time(10, 0), available_to=time(11, 0))

    slots = generate_slots(rules_for_day(availability, 1), {})

    assert [slot.time for slot in slots] == [time(10, 0), time(10, 30)]


def test_legacy_profile_without_matching_day_is_empty() -> None:
    availability = LegacyDailyAvailability(days=("Tuesday",), available_from=None, available_to=None)

    assert rules_for_day(availability, 1) == []


def test_full_day_leave_blocks_every_slot() -> None:
    slots = generate_slots([make_rule(time(9, 0), time(11, 0))], {})
    leave = FakeLeave(status=LeaveStatusEnum.APPROVED, is_full_day=True)

    overlaid = apply_leave_overlay(slots, leave)

    assert len(overlaid) == len(slots)
    assert all(slot.available is False for slot in overlaid)
    assert [slot.capacity for slot in overlaid] == [slot.capacity for slot in slots]


def test_partial_leave_blocks_only_its_window() -> None:
    slots = generate_slots([make_rule(time(9, 0), time(11, 0))], {})
    leave = FakeLeave(
        status=LeaveStatusEnum.APPROVED,
        is_full_day=False,
        start_time=time(9, 30),
        end_time=time(10, 30),
    )

    overlaid = apply_leave_overlay(slots, leave)

    assert [(slot.time, slot.available) for slot in overlaid] == [
        (time(9, 0), True),
        (time(9, 30), False),
        (time(10, 0), False),
        (time(10, 30), True),
    ]


def test_pending_or_rejected_leave_is_ignored() -> None:
    slots = generate_slots([make_rule(time(9, 0), time(10, 0))], {})

    for status in (LeaveStatusEnum.PENDING, LeaveStatusEnum.REJECTED):
        assert apply_leave_overlay(slots, FakeLeave(status=status)) == slots
        assert leave_blocks_time(FakeLeave(status=status), time(9, 0)) is False


def test_find_rule_for_time_uses_half_open_window() -> None:
    morning = make_rule(time(9, 0), time(10, 0), capacity=2)

    assert find_rule_for_time([morning], time(9, 45)) is morning
    assert find_rule_for_time([morning], time(10, 0)) is None
    assert find_rule_for_time([], time(9, 0)) is None
