"""Shared fixtures: a throwaway SQLite ledger, a fixed clock and seed helpers."""

import pytest
from datetime import datetime, timedelta, timezone

from eduledger.schemas import (
    AttendanceEntry,
    AttendanceSession,
    AttendanceStatus,
    Curriculum,
    Level,
    ProgressSettings,
    Subscription,
    SubscriptionProgress,
    SubscriptionStatus,
)
from eduledger.classroom import LedgerStore, PromotionEngine


START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, hours: int = 0):
        self.now = self.now + timedelta(days=days, hours=hours)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store(tmp_path):
    return LedgerStore(tmp_path / "ledger.db")


@pytest.fixture
def engine(store, clock):
    return PromotionEngine(store, clock=clock, actor="tester")


@pytest.fixture
def curriculum(store):
    """Three levels of ten sessions; levels 2 and 3 cost 30 and 45 days."""
    curriculum = Curriculum(
        id="eng",
        title="English",
        levels=[
            Level(order=1, title="Beginner", sessions_count=10, duration_days=30),
            Level(order=2, title="Elementary", sessions_count=10, duration_days=30),
            Level(order=3, title="Intermediate", sessions_count=10, duration_days=45),
        ],
        progress_settings=ProgressSettings(minimum_completion_rate=80),
    )
    store.put_curriculum(curriculum)
    return curriculum


@pytest.fixture
def enroll(store, clock):
    """Create a subscription directly in the store."""

    def _enroll(
        student_id: str,
        curriculum_id: str = "eng",
        level: int = 1,
        credit: int = 0,
        completed: set[int] | None = None,
        status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
        expires_in_days: int | None = 30,
    ) -> Subscription:
        expires_at = None if expires_in_days is None else clock() + timedelta(days=expires_in_days)
        subscription = Subscription(
            id=f"sub-{student_id}-{curriculum_id}",
            student_id=student_id,
            curriculum_id=curriculum_id,
            status=status,
            current_level=level,
            access_credit_days=credit,
            current_level_access_expires_at=expires_at,
            progress=SubscriptionProgress(
                completed_levels=completed if completed is not None else set(range(1, level))
            ),
        )
        return store.create_subscription(subscription)

    return _enroll


@pytest.fixture
def attend(store):
    """Record `attended` sessions (and `missed` absences) for one student at one level."""

    def _attend(
        student_id: str,
        level: int,
        attended: int,
        missed: int = 0,
        curriculum_id: str = "eng",
        status: AttendanceStatus = AttendanceStatus.PRESENT,
        group_id: str | None = None,
    ):
        statuses = [status] * attended + [AttendanceStatus.ABSENT] * missed
        for number, entry_status in enumerate(statuses, start=1):
            store.add_attendance_session(AttendanceSession(
                curriculum_id=curriculum_id,
                group_id=group_id,
                level=level,
                session_number=number,
                attendance=[AttendanceEntry(student_id=student_id, status=entry_status)],
            ))

    return _attend
