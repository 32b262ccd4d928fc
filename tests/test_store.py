"""
LedgerStore tests.

Covers document round-trips, compare-and-swap versioning and the
single-transaction saga step.
"""

import pytest

from eduledger.schemas import (
    Group,
    GroupPromotionSaga,
    SagaStatus,
    SubscriptionStatus,
)
from eduledger.classroom import ConcurrencyConflictError, LedgerStore


class TestDocuments:
    """Test basic storage of catalog, subscriptions and attendance."""

    def test_creates_database_file(self, tmp_path):
        db_path = tmp_path / "nested" / "ledger.db"
        LedgerStore(db_path)
        assert db_path.exists()

    def test_curriculum_upsert(self, store, curriculum):
        renamed = curriculum.model_copy(update={"title": "English v2"})
        store.put_curriculum(renamed)

        assert store.get_curriculum("eng").title == "English v2"
        assert [c.id for c in store.list_curricula()] == ["eng"]
        assert store.get_curriculum("missing") is None

    def test_subscription_round_trip(self, store, enroll):
        created = enroll("s1", level=2, credit=12)

        loaded = store.get_subscription(created.id)

        assert loaded == created
        assert loaded.progress.completed_levels == {1}
        assert loaded.current_level_access_expires_at.tzinfo is not None

    def test_list_subscriptions_filters(self, store, enroll):
        enroll("s1")
        enroll("s2", status=SubscriptionStatus.PENDING)
        enroll("s3", curriculum_id="math")

        assert len(store.list_subscriptions()) == 3
        assert [s.student_id for s in store.list_subscriptions("eng")] == ["s1", "s2"]
        assert [s.student_id for s in store.list_subscriptions("eng", SubscriptionStatus.ACTIVE)] == ["s1"]

    def test_attendance_filters(self, store, attend):
        attend("s1", level=1, attended=2)
        attend("s1", level=2, attended=1, group_id="g1")

        assert len(store.list_attendance_sessions("eng")) == 3
        assert len(store.list_attendance_sessions("eng", level=1)) == 2
        assert len(store.list_attendance_sessions("eng", group_id="g1")) == 1
        assert all(s.id is not None for s in store.list_attendance_sessions("eng"))


class TestCompareAndSwap:
    """Test versioned writes."""

    def test_version_bumps(self, store, enroll):
        created = enroll("s1", credit=5)

        saved = store.save_subscription(created.model_copy(update={"access_credit_days": 6}))

        assert saved.version == 1
        assert store.get_subscription(created.id).version == 1

    def test_stale_subscription_write_conflicts(self, store, enroll):
        created = enroll("s1", credit=5)
        first = store.get_subscription(created.id)
        second = store.get_subscription(created.id)
        store.save_subscription(first.model_copy(update={"access_credit_days": 50}))

        with pytest.raises(ConcurrencyConflictError):
            store.save_subscription(second.model_copy(update={"access_credit_days": 0}))

        assert store.get_subscription(created.id).access_credit_days == 50

    def test_stale_group_write_conflicts(self, store):
        group = store.create_group(Group(id="g1", curriculum_id="eng"))
        store.save_group(group.model_copy(update={"name": "Morning"}))

        with pytest.raises(ConcurrencyConflictError):
            store.save_group(group.model_copy(update={"name": "Evening"}))

        assert store.get_group("g1").name == "Morning"


class TestSagaStorage:
    """Test saga persistence."""

    def make_saga(self, clock, **overrides):
        fields = dict(
            token="tok",
            group_id="g1",
            curriculum_id="eng",
            from_level=1,
            to_level=2,
            selected=["s1"],
            created_at=clock(),
        )
        fields.update(overrides)
        return GroupPromotionSaga(**fields)

    def test_create_is_first_writer_wins(self, store, clock):
        store.create_saga(self.make_saga(clock, selected=["s1"]))

        stored = store.create_saga(self.make_saga(clock, selected=["s2"]))

        assert stored.selected == ["s1"]

    def test_step_rolls_back_with_stale_subscription(self, store, enroll, clock):
        created = enroll("s1", credit=5)
        store.save_subscription(created)
        saga = store.create_saga(self.make_saga(clock))

        with pytest.raises(ConcurrencyConflictError):
            store.save_saga_step(
                saga.model_copy(update={"promoted": ["s1"]}),
                subscription=created.model_copy(update={"current_level": 2}),
            )

        assert store.get_saga("tok").promoted == []
        assert store.get_subscription(created.id).current_level == 1

    def test_list_by_status(self, store, clock):
        store.create_saga(self.make_saga(clock, token="a"))
        done = store.create_saga(self.make_saga(clock, token="b"))
        store.save_saga_step(done.model_copy(update={"status": SagaStatus.COMPLETED}))

        assert [s.token for s in store.list_sagas(SagaStatus.IN_PROGRESS)] == ["a"]
        assert len(store.list_sagas()) == 2
