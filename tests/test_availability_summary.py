from __future__ import annotations

from datetime import UTC, date, datetime
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

import app.modules.scheduling.service as scheduling_service_module
from app.core.enums import RoleEnum
from app.modules.scheduling.service import SchedulingService
from app.shared.exceptions import UnauthorizedException

MONDAY = date(2026, 3, 2)


class FakeSchedulingRepository:
    def __init__(self, doctors_by_day: dict[int, list[UUID]], rules_by_day: dict[int, int]) -> None:
        self.doctors_by_day = doctors_by_day
        self.rules_by_day = rules_by_day
        self.calls: list[tuple] = []

    async def list_doctor_ids_with_rules_on_day(self, day_of_week: int, hospital_id: UUID | None) -> list[UUID]:
        self.calls.append(("doctors", day_of_week, hospital_id))
        return list(self.doctors_by_day.get(day_of_week, []))

    async def count_active_rules_by_day(self, hospital_id: UUID | None) -> dict[int, int]:
        self.calls.append(("rules", hospital_id))
        return dict(self.rules_by_day)


class FakeLeaveRepository:
    def __init__(self, full_day: set[UUID] | None = None, counts: dict[str, int] | None = None) -> None:
        self.full_day = full_day or set()
        self.counts = counts or {"total": 0, "today": 0, "upcoming": 0}
        self.today: date | None = None

    async def list_doctor_ids_on_full_day_leave(self, leave_date: date, doctor_ids: list[UUID]) -> set[UUID]:
        return {doctor_id for doctor_id in doctor_ids if doctor_id in self.full_day}

    async def count_approved_leaves(self, hospital_id: UUID | None, today: date) -> dict[str, int]:
        self.today = today
        return dict(self.counts)


class FakeClinicRepository:
    def __init__(self, doctors_total: int) -> None:
        self.doctors_total = doctors_total
        self.scopes: list[UUID | None] = []

    async def count_doctors(self, hospital_id: UUID | None) -> int:
        self.scopes.append(hospital_id)
        return self.doctors_total


def make_actor(role: RoleEnum, hospital_id: UUID | None) -> SimpleNamespace:
    return SimpleNamespace(id=uuid4(), role=SimpleNamespace(name=role), hospital_id=hospital_id)


def make_service(
    scheduling_repo: FakeSchedulingRepository,
    leave_repo: FakeLeaveRepository,
    clinic_repo: FakeClinicRepository | None = None,
) -> SchedulingService:
    return SchedulingService(
        scheduling_repository=scheduling_repo,
        leave_repository=leave_repo,
        clinic_repository=clinic_repo or FakeClinicRepository(0),
        appointment_repository=None,
        audit_repository=None,
    )


@pytest.mark.asyncio
async def test_available_doctors_excludes_only_full_day_leave() -> None:
    hospital_id = uuid4()
    working, on_full_leave, on_partial_leave = uuid4(), uuid4(), uuid4()
    scheduling_repo = FakeSchedulingRepository({1: [working, on_full_leave, on_partial_leave]}, {})
    # Partial-day leave is never reported by the full-day lookup.
    service = make_service(scheduling_repo, FakeLeaveRepository(full_day={on_full_leave}))

    result = await service.available_doctor_ids(MONDAY, make_actor(RoleEnum.RECEPTIONIST, hospital_id))

    assert result.day_of_week == 1
    assert result.doctor_ids == [working, on_partial_leave]
    assert scheduling_repo.calls == [("doctors", 1, hospital_id)]


@pytest.mark.asyncio
async def test_available_doctors_empty_without_rules() -> None:
    service = make_service(FakeSchedulingRepository({}, {}), FakeLeaveRepository())

    result = await service.available_doctor_ids(date(2026, 3, 1), make_actor(RoleEnum.ADMIN, uuid4()))

    assert result.day_of_week == 0
    assert result.doctor_ids == []


@pytest.mark.asyncio
async def test_summary_zero_fills_histogram(monkeypatch: pytest.MonkeyPatch) -> None:
    fixed_now = datetime(2026, 3, 2, 7, 30, tzinfo=UTC)
    monkeypatch.setattr(scheduling_service_module, "utc_now", lambda: fixed_now)
    monkeypatch.setattr(scheduling_service_module, "utc_today", lambda: fixed_now.date())
    hospital_id = uuid4()
    leave_repo = FakeLeaveRepository(counts={"total": 5, "today": 1, "upcoming": 3})
    clinic_repo = FakeClinicRepository(doctors_total=4)
    service = make_service(FakeSchedulingRepository({}, {1: 3, 3: 2}), leave_repo, clinic_repo)

    summary = await service.availability_summary(make_actor(RoleEnum.ADMIN, hospital_id))

    assert summary.generated_at == fixed_now
    assert summary.hospital_id == hospital_id
    assert summary.doctors_total == 4
    assert summary.active_rules_total == 5
    assert summary.active_rules_by_day_of_week == {0: 0, 1: 3, 2: 0, 3: 2, 4: 0, 5: 0, 6: 0}
    assert (summary.leaves_approved_total, summary.leaves_approved_today, summary.leaves_approved_upcoming) == (
        5,
        1,
        3,
    )
    assert leave_repo.today == MONDAY
    assert clinic_repo.scopes == [hospital_id]


@pytest.mark.asyncio
async def test_summary_for_super_admin_covers_all_hospitals() -> None:
    clinic_repo = FakeClinicRepository(doctors_total=10)
    service = make_service(FakeSchedulingRepository({}, {}), FakeLeaveRepository(), clinic_repo)

    summary = await service.availability_summary(make_actor(RoleEnum.SUPER_ADMIN, None))

    assert summary.hospital_id is None
    assert summary.active_rules_total == 0
    assert clinic_repo.scopes == [None]


@pytest.mark.asyncio
async def test_summary_requires_admin() -> None:
    service = make_service(FakeSchedulingRepository({}, {}), FakeLeaveRepository())

    with pytest.raises(UnauthorizedException):
        await service.availability_summary(make_actor(RoleEnum.RECEPTIONIST, uuid4()))
