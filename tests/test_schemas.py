"""
Schema validation tests for EduLedger.

Tests all Pydantic models to ensure they validate correctly.
"""

import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError

from eduledger.config import DEFAULT_ACTOR
from eduledger.schemas import (
    # Curriculum
    Level,
    ProgressSettings,
    Curriculum,
    DEFAULT_LEVEL_DURATION_DAYS,
    DEFAULT_MINIMUM_COMPLETION_RATE,
    # Attendance
    AttendanceStatus,
    AttendanceEntry,
    AttendanceSession,
    # Subscription
    PromotionRecord,
    SubscriptionProgress,
    Subscription,
    SubscriptionStatus,
    CreditHistoryEntry,
    # Group
    Group,
    GroupStatus,
    # Promotion
    GroupPromotionPreview,
    GroupPromotionSaga,
    GroupPromotionOutcome,
    FailedPromotion,
    ReadinessReason,
    SagaStatus,
    StudentReadiness,
)


NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestCurriculumSchemas:
    """Test curriculum-related schemas."""

    def test_levels_sorted_by_order(self):
        curriculum = Curriculum(id="c", levels=[Level(order=2), Level(order=1)])
        assert [level.order for level in curriculum.levels] == [1, 2]
        assert curriculum.final_level == 2

    def test_non_contiguous_levels_rejected(self):
        with pytest.raises(ValidationError):
            Curriculum(id="c", levels=[Level(order=1), Level(order=3)])
        with pytest.raises(ValidationError):
            Curriculum(id="c", levels=[Level(order=2)])
        with pytest.raises(ValidationError):
            Curriculum(id="c", levels=[Level(order=1), Level(order=1)])

    def test_level_bounds(self):
        with pytest.raises(ValidationError):
            Level(order=0)
        with pytest.raises(ValidationError):
            Level(order=1, duration_days=0)
        with pytest.raises(ValidationError):
            Level(order=1, sessions_count=-1)

    def test_policy_defaults(self):
        curriculum = Curriculum(id="c", levels=[Level(order=1), Level(order=2)])
        assert curriculum.minimum_completion_rate == DEFAULT_MINIMUM_COMPLETION_RATE
        assert curriculum.level_duration(2) == DEFAULT_LEVEL_DURATION_DAYS
        assert curriculum.level_duration(9) == DEFAULT_LEVEL_DURATION_DAYS
        assert curriculum.progress_settings.require_admin_approval

    def test_explicit_policy(self):
        curriculum = Curriculum(
            id="c",
            levels=[Level(order=1), Level(order=2, duration_days=45)],
            progress_settings=ProgressSettings(minimum_completion_rate=0),
        )
        assert curriculum.minimum_completion_rate == 0
        assert curriculum.level_duration(2) == 45

    def test_group_size_bounds(self):
        with pytest.raises(ValidationError):
            Curriculum(id="c", levels=[Level(order=1)], min_group_size=10, max_group_size=10)

    def test_completion_rate_range(self):
        with pytest.raises(ValidationError):
            ProgressSettings(minimum_completion_rate=120)

    def test_get_level(self):
        curriculum = Curriculum(id="c", levels=[Level(order=1, title="A")])
        assert curriculum.get_level(1).title == "A"
        assert curriculum.get_level(0) is None
        assert curriculum.get_level(2) is None


class TestAttendanceSchemas:
    """Test attendance-related schemas."""

    def test_attended_by(self):
        session = AttendanceSession(
            curriculum_id="c",
            level=1,
            session_number=1,
            attendance=[
                AttendanceEntry(student_id="p", status=AttendanceStatus.PRESENT),
                AttendanceEntry(student_id="l", status=AttendanceStatus.LATE),
                AttendanceEntry(student_id="a", status=AttendanceStatus.ABSENT),
            ],
        )
        assert session.attended_by("p")
        assert session.attended_by("l")
        assert not session.attended_by("a")
        assert not session.attended_by("missing")
        assert session.status_for("missing") is None

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            AttendanceEntry(student_id="s", status="excused")


class TestSubscriptionSchemas:
    """Test subscription-related schemas."""

    def test_defaults(self):
        subscription = Subscription(id="s", student_id="st", curriculum_id="c")
        assert subscription.status == SubscriptionStatus.PENDING
        assert subscription.current_level == 1
        assert subscription.progress.completed_levels == set()
        assert subscription.version == 0
        assert not subscription.is_active

    def test_completed_levels_below_current(self):
        with pytest.raises(ValidationError):
            Subscription(
                id="s",
                student_id="st",
                curriculum_id="c",
                current_level=2,
                progress=SubscriptionProgress(completed_levels={1, 2}),
            )

    def test_negative_credit_rejected(self):
        with pytest.raises(ValidationError):
            Subscription(id="s", student_id="st", curriculum_id="c", access_credit_days=-1)

    def test_days_left_rounds_up(self):
        subscription = Subscription(
            id="s",
            student_id="st",
            curriculum_id="c",
            current_level_access_expires_at=NOW + timedelta(days=2, hours=1),
        )
        assert subscription.days_left(NOW) == 3
        assert not subscription.access_expired(NOW)
        assert subscription.access_expired(NOW + timedelta(days=3))

    def test_no_expiry(self):
        subscription = Subscription(id="s", student_id="st", curriculum_id="c")
        assert subscription.days_left(NOW) is None
        assert not subscription.access_expired(NOW)

    def test_promotion_record_bounds(self):
        with pytest.raises(ValidationError):
            PromotionRecord(
                promoted_at=NOW,
                from_level=1,
                to_level=2,
                progress_at_promotion=101,
                credits_deducted=30,
                remaining_credits=0,
            )

    def test_credit_history_requires_positive_top_up(self):
        with pytest.raises(ValidationError):
            CreditHistoryEntry(
                student_id="st",
                curriculum_id="c",
                subscription_id="s",
                old_credit=5,
                new_credit=5,
                added_days=0,
                created_at=NOW,
            )

    def test_actor_defaults_from_config(self):
        record = PromotionRecord(
            promoted_at=NOW,
            from_level=1,
            to_level=2,
            progress_at_promotion=90,
            credits_deducted=30,
            remaining_credits=0,
        )
        entry = CreditHistoryEntry(
            student_id="st",
            curriculum_id="c",
            subscription_id="s",
            old_credit=0,
            new_credit=5,
            added_days=5,
            created_at=NOW,
        )
        assert record.promoted_by == DEFAULT_ACTOR
        assert entry.actor == DEFAULT_ACTOR

    def test_json_round_trip_keeps_set(self):
        subscription = Subscription(
            id="s",
            student_id="st",
            curriculum_id="c",
            current_level=3,
            progress=SubscriptionProgress(completed_levels={2, 1}),
        )
        loaded = Subscription.model_validate_json(subscription.model_dump_json())
        assert loaded.progress.completed_levels == {1, 2}


class TestGroupSchemas:
    """Test group-related schemas."""

    def test_students_deduplicated(self):
        group = Group(id="g", curriculum_id="c", students=["a", "b", "a"])
        assert group.students == ["a", "b"]
        assert group.student_count == 2

    def test_size_bounds(self):
        with pytest.raises(ValidationError):
            Group(id="g", curriculum_id="c", min_size=5, max_size=4)

    def test_defaults(self):
        group = Group(id="g", curriculum_id="c")
        assert group.status == GroupStatus.PENDING
        assert group.progress.current_level == 1


class TestPromotionSchemas:
    """Test promotion payload schemas."""

    def make_preview(self, not_ready):
        return GroupPromotionPreview(
            token="t",
            group_id="g",
            curriculum_id="c",
            from_level=1,
            to_level=2,
            level_duration_days=30,
            minimum_completion_rate=80,
            ready=[StudentReadiness(student_id="a", ready=True, reason=ReadinessReason.READY)],
            not_ready=not_ready,
        )

    def test_requires_confirmation(self):
        assert not self.make_preview([]).requires_confirmation
        blocked = StudentReadiness(student_id="b", ready=False, reason=ReadinessReason.INSUFFICIENT_CREDIT)
        preview = self.make_preview([blocked])
        assert preview.requires_confirmation
        assert preview.model_dump()["requires_confirmation"] is True

    def test_saga_remaining(self):
        saga = GroupPromotionSaga(
            token="t",
            group_id="g",
            curriculum_id="c",
            from_level=1,
            to_level=2,
            selected=["a", "b", "c", "d"],
            promoted=["a"],
            skipped=["b"],
            failed=[FailedPromotion(student_id="c", reason="InsufficientCreditError")],
            created_at=NOW,
        )
        assert saga.remaining() == ["d"]
        assert saga.status == SagaStatus.IN_PROGRESS

        outcome = GroupPromotionOutcome.from_saga(saga)
        assert outcome.promoted == ["a"]
        assert outcome.failed[0].student_id == "c"


class TestSchemaImports:
    """Test that all schemas can be imported from package."""

    def test_import_all(self):
        from eduledger import schemas
        for name in schemas.__all__:
            assert hasattr(schemas, name)
