"""Pure slot computation: weekly rules and leave into bookable slots.

Nothing here touches the database; callers load rules, occupancy counts and
leave, and this module turns them into an ordered list of ``Slot`` values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import date, time
from typing import Protocol

from app.core.enums import LeaveStatusEnum
from app.shared.utils import from_minutes, to_minutes, truncate_to_minute

DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

LEGACY_SLOT_DURATION_MINUTES = 30
LEGACY_DEFAULT_FROM = time(9, 0)
LEGACY_DEFAULT_TO = time(17, 0)


def day_of_week(value: date) -> int:
    """Return day index with 0 = Sunday ... 6 = Saturday."""
    return (value.weekday() + 1) % 7


@dataclass(frozen=True, slots=True)
class WindowRule:
    """Normalized weekly window used for generation."""

    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int
    buffer_minutes: int = 0
    max_appointments_per_slot: int = 1


@dataclass(frozen=True, slots=True)
class Slot:
    """One bookable point in time derived from a rule."""

    time: time
    available: bool
    capacity: int
    slot_duration_minutes: int
    buffer_minutes: int


@dataclass(frozen=True, slots=True)
class ExplicitAvailability:
    """Doctor has explicit weekly rules for the day."""

    rules: tuple[WindowRule, ...]


@dataclass(frozen=True, slots=True)
class LegacyDailyAvailability:
    """Doctor only has the coarse day-name list and one daily range."""

    days: tuple[str, ...]
    available_from: time | None
    available_to: time | None


Availability = ExplicitAvailability | LegacyDailyAvailability


class RuleLike(Protocol):
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int
    buffer_minutes: int
    max_appointments_per_slot: int


class LegacyProfile(Protocol):
    available_days: Sequence[str] | None
    available_from: time | None
    available_to: time | None


class LeaveLike(Protocol):
    status: LeaveStatusEnum
    is_full_day: bool
    start_time: time | None
    end_time: time | None


def to_window_rule(rule: RuleLike) -> WindowRule:
    return WindowRule(
        day_of_week=rule.day_of_week,
        start_time=truncate_to_minute(rule.start_time),
        end_time=truncate_to_minute(rule.end_time),
        slot_duration_minutes=rule.slot_duration_minutes,
        buffer_minutes=rule.buffer_minutes,
        max_appointments_per_slot=rule.max_appointments_per_slot,
    )


def resolve_availability(
    explicit_rules: Iterable[RuleLike],
    profile: LegacyProfile | None,
) -> Availability:
    """Pick the availability representation for one doctor and day.

    Explicit rules win whenever at least one exists for the day; only then is
    the legacy profile consulted.
    """
    rules = tuple(to_window_rule(rule) for rule in explicit_rules)
    if rules or profile is None:
        return ExplicitAvailability(rules=rules)
    return LegacyDailyAvailability(
        days=tuple(str(day or "") for day in (profile.available_days or ())),
        available_from=profile.available_from,
        available_to=profile.available_to,
    )


def rules_for_day(
    availability: Availability,
    weekday: int,
    *,
    legacy_slot_duration_minutes: int = LEGACY_SLOT_DURATION_MINUTES,
    legacy_default_from: time = LEGACY_DEFAULT_FROM,
    legacy_default_to: time = LEGACY_DEFAULT_TO,
) -> list[WindowRule]:
    """Normalize an availability variant into the window rules of one day."""
    if isinstance(availability, ExplicitAvailability):
        return [rule for rule in availability.rules if rule.day_of_week == weekday]

    day_name = DAY_NAMES[weekday].lower()
    if not any(day.strip().lower() == day_name for day in availability.days):
        return []
    return [
        WindowRule(
            day_of_week=weekday,
            start_time=truncate_to_minute(availability.available_from or legacy_default_from),
            end_time=truncate_to_minute(availability.available_to or legacy_default_to),
            slot_duration_minutes=legacy_slot_duration_minutes,
            buffer_minutes=0,
            max_appointments_per_slot=1,
        ),
    ]


def _step_minutes(rule: WindowRule) -> int:
    step = rule.slot_duration_minutes + rule.buffer_minutes
    if step > 0:
        return step
    if rule.slot_duration_minutes > 0:
        return rule.slot_duration_minutes
    return 1


def generate_slots(rules: Iterable[WindowRule], booked_counts: Mapping[time, int]) -> list[Slot]:
    """Expand rules into slots, marking those whose occupancy reached capacity.

    Slots are emitted per rule in chronological order and rules are simply
    concatenated, so overlapping windows show up as duplicate times.
    """
    slots: list[Slot] = []
    for rule in rules:
        cursor = to_minutes(rule.start_time)
        end = to_minutes(rule.end_time)
        step = _step_minutes(rule)
        capacity = rule.max_appointments_per_slot
        while cursor + rule.slot_duration_minutes <= end:
            slot_time = from_minutes(cursor)
            booked = booked_counts.get(slot_time, 0)
            slots.append(
                Slot(
                    time=slot_time,
                    available=booked < capacity,
                    capacity=capacity,
                    slot_duration_minutes=rule.slot_duration_minutes,
                    buffer_minutes=rule.buffer_minutes,
                ),
            )
            cursor += step
    return slots


def leave_blocks_time(leave: LeaveLike | None, slot_time: time) -> bool:
    """Return True when approved leave covers the given time-of-day."""
    if leave is None or leave.status != LeaveStatusEnum.APPROVED:
        return False
    if leave.is_full_day:
        return True
    if leave.start_time is None or leave.end_time is None:
        return False
    minutes = to_minutes(slot_time)
    return to_minutes(leave.start_time) <= minutes < to_minutes(leave.end_time)


def apply_leave_overlay(slots: Sequence[Slot], leave: LeaveLike | None) -> list[Slot]:
    """Force slots covered by approved leave to unavailable."""
    if leave is None or leave.status != LeaveStatusEnum.APPROVED:
        return list(slots)
    return [
        replace(slot, available=False) if leave_blocks_time(leave, slot.time) else slot
        for slot in slots
    ]


def find_rule_for_time(rules: Iterable[WindowRule], slot_time: time) -> WindowRule | None:
    """Return the first rule whose window contains the time, if any."""
    minutes = to_minutes(slot_time)
    for rule in rules:
        if to_minutes(rule.start_time) <= minutes < to_minutes(rule.end_time):
            return rule
    return None
