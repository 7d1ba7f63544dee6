from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time
from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

import app.modules.leaves.service as leave_service_module
from app.core.enums import LeaveStatusEnum, RoleEnum
from app.modules.leaves.repository import LeaveRepository
from app.modules.leaves.schemas import LeaveCreate
from app.modules.leaves.service import LeaveService, decide_leave
from app.shared.exceptions import ConflictException, NotFoundException, UnauthorizedException

LEAVE_DATE = date(2026, 3, 2)


@dataclass
class FakeDoctor:
    id: UUID
    hospital_id: UUID
    user_id: UUID | None = None


@dataclass
class FakeLeave:
    id: UUID
    doctor_id: UUID
    hospital_id: UUID
    leave_date: date
    reason: str | None = None
    is_full_day: bool = True
    start_time: time | None = None
    end_time: time | None = None
    status: LeaveStatusEnum = LeaveStatusEnum.PENDING
    approved_by_user_id: UUID | None = None
    approval_date: datetime | None = None


class FakeLeaveRepository:
    def __init__(self) -> None:
        self.leaves: dict[UUID, FakeLeave] = {}
        self.locked: list[UUID] = []

    async def create_leave(self, **values) -> FakeLeave:
        leave = FakeLeave(id=uuid4(), **values)
        self.leaves[leave.id] = leave
        return leave

    async def get_leave_by_id(self, leave_id: UUID, *, for_update: bool = False) -> FakeLeave | None:
        if for_update:
            self.locked.append(leave_id)
        return self.leaves.get(leave_id)

    async def get_leave_for_date(self, doctor_id: UUID, leave_date: date) -> FakeLeave | None:
        for leave in self.leaves.values():
            if leave.doctor_id == doctor_id and leave.leave_date == leave_date:
                return leave
        return None

    async def delete_leave(self, leave: FakeLeave) -> None:
        self.leaves.pop(leave.id, None)

    async def save(self, leave: FakeLeave) -> FakeLeave:
        self.leaves[leave.id] = leave
        return leave


class FakeClinicRepository:
    def __init__(self, doctors: list[FakeDoctor]) -> None:
        self.doctors = {doctor.id: doctor for doctor in doctors}

    async def get_doctor_by_id(self, doctor_id: UUID) -> FakeDoctor | None:
        return self.doctors.get(doctor_id)


class FakeAuditRepository:
    def __init__(self) -> None:
        self.events: list[dict] = []

    async def create_outbox_event(self, **event) -> None:
        self.events.append(event)


def make_actor(role: RoleEnum, hospital_id: UUID | None, user_id: UUID | None = None) -> SimpleNamespace:
    return SimpleNamespace(id=user_id or uuid4(), role=SimpleNamespace(name=role), hospital_id=hospital_id)


def make_service(doctor: FakeDoctor) -> tuple[LeaveService, FakeLeaveRepository, FakeAuditRepository]:
    leave_repo = FakeLeaveRepository()
    audit_repo = FakeAuditRepository()
    service = LeaveService(
        leave_repository=leave_repo,
        clinic_repository=FakeClinicRepository([doctor]),
        audit_repository=audit_repo,
    )
    return service, leave_repo, audit_repo


def test_partial_leave_requires_both_bounds() -> None:
    with pytest.raises(ValidationError):
        LeaveCreate(doctor_id=uuid4(), leave_date=LEAVE_DATE, is_full_day=False, start_time=time(9, 0))


def test_partial_leave_requires_ordered_bounds() -> None:
    with pytest.raises(ValidationError):
        LeaveCreate(
            doctor_id=uuid4(),
            leave_date=LEAVE_DATE,
            is_full_day=False,
            start_time=time(12, 0),
            end_time=time(9, 0),
        )


def test_full_day_leave_drops_time_bounds() -> None:
    payload = LeaveCreate(
        doctor_id=uuid4(),
        leave_date=LEAVE_DATE,
        is_full_day=True,
        start_time=time(9, 0),
        end_time=time(12, 0),
    )

    assert payload.start_time is None
    assert payload.end_time is None


def test_decide_leave_sets_approver_and_date() -> None:
    approver_id = uuid4()
    decided_at = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)
    leave = FakeLeave(id=uuid4(), doctor_id=uuid4(), hospital_id=uuid4(), leave_date=LEAVE_DATE)

    decide_leave(leave, LeaveStatusEnum.APPROVED, approver_id, uuid4(), decided_at)

    assert leave.status == LeaveStatusEnum.APPROVED
    assert leave.approved_by_user_id == approver_id
    assert leave.approval_date == decided_at


def test_decide_leave_rejects_pending_as_target() -> None:
    leave = FakeLeave(id=uuid4(), doctor_id=uuid4(), hospital_id=uuid4(), leave_date=LEAVE_DATE)

    with pytest.raises(ConflictException):
        decide_leave(leave, LeaveStatusEnum.PENDING, uuid4(), None, datetime.now(UTC))


@pytest.mark.asyncio
async def test_receptionist_requests_leave_as_pending() -> None:
    hospital_id = uuid4()
    doctor = FakeDoctor(id=uuid4(), hospital_id=hospital_id, user_id=uuid4())
    service, _, audit_repo = make_service(doctor)

    leave = await service.create_leave(
        LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE, reason="conference"),
        make_actor(RoleEnum.RECEPTIONIST, hospital_id),
    )

    assert leave.status == LeaveStatusEnum.PENDING
    assert leave.hospital_id == hospital_id
    assert audit_repo.events[0]["event_type"] == "leave.requested"


@pytest.mark.asyncio
async def test_second_leave_for_same_date_is_a_conflict() -> None:
    hospital_id = uuid4()
    doctor = FakeDoctor(id=uuid4(), hospital_id=hospital_id, user_id=uuid4())
    service, _, _ = make_service(doctor)
    doctor_actor = make_actor(RoleEnum.DOCTOR, hospital_id, doctor.user_id)
    await service.create_leave(LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE), doctor_actor)

    with pytest.raises(ConflictException):
        await service.create_leave(LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE), doctor_actor)


@pytest.mark.asyncio
async def test_doctor_cannot_request_leave_for_colleague() -> None:
    hospital_id = uuid4()
    doctor = FakeDoctor(id=uuid4(), hospital_id=hospital_id, user_id=uuid4())
    service, _, _ = make_service(doctor)

    with pytest.raises(UnauthorizedException):
        await service.create_leave(
            LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE),
            make_actor(RoleEnum.DOCTOR, hospital_id),
        )


@pytest.mark.asyncio
async def test_admin_approves_leave_once(monkeypatch: pytest.MonkeyPatch) -> None:
    fixed_now = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)
    monkeypatch.setattr(leave_service_module, "utc_now", lambda: fixed_now)
    hospital_id = uuid4()
    doctor = FakeDoctor(id=uuid4(), hospital_id=hospital_id, user_id=uuid4())
    service, leave_repo, audit_repo = make_service(doctor)
    admin = make_actor(RoleEnum.ADMIN, hospital_id)
    leave = await service.create_leave(LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE), admin)

    approved = await service.approve_leave(leave.id, admin)

    assert approved.status == LeaveStatusEnum.APPROVED
    assert approved.approved_by_user_id == admin.id
    assert approved.approval_date == fixed_now
    assert leave_repo.locked == [leave.id]
    assert audit_repo.events[-1]["event_type"] == "leave.approved"

    with pytest.raises(ConflictException):
        await service.reject_leave(leave.id, admin)
    assert leave_repo.leaves[leave.id].status == LeaveStatusEnum.APPROVED


@pytest.mark.asyncio
async def test_admin_rejects_leave() -> None:
    hospital_id = uuid4()
    doctor = FakeDoctor(id=uuid4(), hospital_id=hospital_id)
    service, _, audit_repo = make_service(doctor)
    admin = make_actor(RoleEnum.ADMIN, hospital_id)
    leave = await service.create_leave(LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE), admin)

    rejected = await service.reject_leave(leave.id, admin)

    assert rejected.status == LeaveStatusEnum.REJECTED
    assert audit_repo.events[-1]["event_type"] == "leave.rejected"


@pytest.mark.asyncio
async def test_doctor_with_admin_role_cannot_approve_own_leave() -> None:
    hospital_id = uuid4()
    doctor = FakeDoctor(id=uuid4(), hospital_id=hospital_id, user_id=uuid4())
    service, leave_repo, _ = make_service(doctor)
    doctor_admin = make_actor(RoleEnum.ADMIN, hospital_id, doctor.user_id)
    leave = await service.create_leave(LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE), doctor_admin)

    with pytest.raises(UnauthorizedException):
        await service.approve_leave(leave.id, doctor_admin)
    with pytest.raises(UnauthorizedException):
        await service.reject_leave(leave.id, doctor_admin)
    assert leave_repo.leaves[leave.id].status == LeaveStatusEnum.PENDING


@pytest.mark.asyncio
async def test_receptionist_cannot_decide_leave() -> None:
    hospital_id = uuid4()
    doctor = FakeDoctor(id=uuid4(), hospital_id=hospital_id)
    service, _, _ = make_service(doctor)
    receptionist = make_actor(RoleEnum.RECEPTIONIST, hospital_id)
    leave = await service.create_leave(LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE), receptionist)

    with pytest.raises(UnauthorizedException):
        await service.approve_leave(leave.id, receptionist)


@pytest.mark.asyncio
async def test_check_and_delete_leave() -> None:
    hospital_id = uuid4()
    doctor = FakeDoctor(id=uuid4(), hospital_id=hospital_id)
    service, _, _ = make_service(doctor)
    receptionist = make_actor(RoleEnum.RECEPTIONIST, hospital_id)
    leave = await service.create_leave(LeaveCreate(doctor_id=doctor.id, leave_date=LEAVE_DATE), receptionist)

    found = await service.check_leave(doctor.id, LEAVE_DATE, receptionist)
    await service.delete_leave(leave.id, receptionist)

    assert found is leave
    assert await service.check_leave(doctor.id, LEAVE_DATE, receptionist) is None
    with pytest.raises(NotFoundException):
        await service.delete_leave(leave.id, receptionist)


class DuplicateKeySession:
    def __init__(self) -> None:
        self.added: list = []

    def add(self, instance) -> None:
        self.added.append(instance)

    async def flush(self) -> None:
        raise IntegrityError(
            "INSERT INTO doctor_leaves",
            {},
            Exception('duplicate key value violates unique constraint "uq_doctor_leaves_doctor_id_leave_date"'),
        )


@pytest.mark.asyncio
async def test_concurrent_duplicate_leave_insert_is_a_conflict() -> None:
    session = DuplicateKeySession()
    repository = LeaveRepository(session)

    with pytest.raises(ConflictException) as exc:
        await repository.create_leave(
            doctor_id=uuid4(),
            hospital_id=uuid4(),
            leave_date=LEAVE_DATE,
            reason=None,
            is_full_day=True,
            start_time=None,
            end_time=None,
        )

    assert exc.value.message == "Leave already exists for this date"
    assert isinstance(exc.value.__cause__, IntegrityError)
    assert len(session.added) == 1
