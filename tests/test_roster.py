"""
Group roster tests.

Covers roster status derivation, membership changes and operator toggles.
"""

import pytest

from eduledger.schemas import Group, GroupStatus, SubscriptionStatus
from eduledger.classroom import (
    GroupNotFoundError,
    InvalidStatusChangeError,
    RosterManager,
    determine_group_status,
    status_after_membership_change,
)


@pytest.fixture
def roster(store, clock):
    return RosterManager(store, clock=clock)


@pytest.fixture
def small_group(roster, curriculum):
    """Group bounded to 2..3 students, created with one student."""
    return roster.create_group(Group(id="g1", curriculum_id="eng", students=["s1"], min_size=2, max_size=3))


class TestDetermineGroupStatus:
    """Test the size-derived status."""

    def test_boundaries(self):
        assert determine_group_status(0, 2, 3) == GroupStatus.PENDING
        assert determine_group_status(1, 2, 3) == GroupStatus.PENDING
        assert determine_group_status(2, 2, 3) == GroupStatus.READY
        assert determine_group_status(3, 2, 3) == GroupStatus.READY
        assert determine_group_status(4, 2, 3) == GroupStatus.OVERFULL

    def test_empty_group_is_pending_even_with_zero_minimum(self):
        assert determine_group_status(0, 0, 3) == GroupStatus.PENDING
        assert determine_group_status(1, 0, 3) == GroupStatus.READY
        assert determine_group_status(0, 1, 3) == GroupStatus.PENDING

    def test_toggles_survive_membership_change(self):
        active = Group(id="g", curriculum_id="eng", min_size=2, max_size=3, status=GroupStatus.ACTIVE)
        inactive = active.model_copy(update={"status": GroupStatus.INACTIVE})

        assert status_after_membership_change(active, 3) == GroupStatus.ACTIVE
        assert status_after_membership_change(active, 1) == GroupStatus.PENDING
        assert status_after_membership_change(active, 4) == GroupStatus.OVERFULL
        assert status_after_membership_change(inactive, 3) == GroupStatus.INACTIVE


class TestMembership:
    """Test assign_students / remove_students."""

    def test_create_derives_status(self, small_group):
        assert small_group.status == GroupStatus.PENDING

    def test_assign_reaches_ready_then_overfull(self, roster, small_group, clock):
        group = roster.assign_students("g1", ["s2"])
        assert group.status == GroupStatus.READY
        assert group.status_changed_at == clock()

        group = roster.assign_students("g1", ["s3", "s4"])
        assert group.students == ["s1", "s2", "s3", "s4"]
        assert group.status == GroupStatus.OVERFULL

    def test_assign_ignores_duplicates(self, roster, small_group):
        group = roster.assign_students("g1", ["s1", "s2", "s2"])
        assert group.students == ["s1", "s2"]

    def test_remove_drops_below_minimum(self, roster, small_group):
        roster.assign_students("g1", ["s2"])

        group = roster.remove_students("g1", ["s2"])

        assert group.students == ["s1"]
        assert group.status == GroupStatus.PENDING

    def test_missing_group(self, roster):
        with pytest.raises(GroupNotFoundError):
            roster.assign_students("nope", ["s1"])


class TestChangeGroupStatus:
    """Test the operator activate / deactivate toggle."""

    def test_activate_requires_minimum(self, roster, small_group):
        with pytest.raises(InvalidStatusChangeError):
            roster.change_group_status("g1", GroupStatus.ACTIVE)

    def test_activate_and_deactivate(self, roster, small_group):
        roster.assign_students("g1", ["s2"])

        active = roster.change_group_status("g1", GroupStatus.ACTIVE)
        assert active.status == GroupStatus.ACTIVE

        # still within bounds: stays active
        assert roster.assign_students("g1", ["s3"]).status == GroupStatus.ACTIVE

        inactive = roster.change_group_status("g1", GroupStatus.INACTIVE)
        assert inactive.status == GroupStatus.INACTIVE
        assert roster.remove_students("g1", ["s3"]).status == GroupStatus.INACTIVE

    def test_overfull_cannot_activate(self, roster, small_group):
        roster.assign_students("g1", ["s2", "s3", "s4"])

        with pytest.raises(InvalidStatusChangeError):
            roster.change_group_status("g1", GroupStatus.ACTIVE)

    def test_derived_statuses_not_set_by_hand(self, roster, small_group):
        with pytest.raises(InvalidStatusChangeError):
            roster.change_group_status("g1", GroupStatus.READY)

    def test_deactivate_always_allowed(self, roster, small_group):
        assert roster.change_group_status("g1", GroupStatus.INACTIVE).status == GroupStatus.INACTIVE


class TestAvailableStudents:
    """Test available_students."""

    def test_excludes_active_group_members(self, roster, curriculum, enroll):
        for student_id in ("s1", "s2", "s3"):
            enroll(student_id)
        enroll("s4", status=SubscriptionStatus.PENDING)
        roster.create_group(Group(id="g1", curriculum_id="eng", students=["s1", "s2"], min_size=2, max_size=3))
        roster.create_group(Group(id="g2", curriculum_id="eng", students=["s3"], min_size=1, max_size=3))
        roster.change_group_status("g1", GroupStatus.ACTIVE)

        available = roster.available_students("eng")

        assert [s.student_id for s in available] == ["s3"]
