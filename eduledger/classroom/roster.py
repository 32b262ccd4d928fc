"""
Roster - Group formation and the roster status sub-state-machine.

Roster status (pending / ready / overfull) follows membership size against
the group's bounds. Active / inactive are operator toggles on top of it.
None of this touches curriculum-level promotion.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from eduledger.schemas import Group, GroupStatus, Subscription, SubscriptionStatus

from .errors import GroupNotFoundError, InvalidStatusChangeError
from .promotion import utc_now
from .store import LedgerStore

logger = logging.getLogger(__name__)


def determine_group_status(student_count: int, min_size: int, max_size: int) -> GroupStatus:
    """Derive roster status from size bounds. An empty roster is always pending."""
    if student_count == 0 or student_count < min_size:
        return GroupStatus.PENDING
    if student_count <= max_size:
        return GroupStatus.READY
    return GroupStatus.OVERFULL


def status_after_membership_change(group: Group, student_count: int) -> GroupStatus:
    """
    Status of a group once its roster holds `student_count` students.

    An inactive group stays inactive. An active group stays active while its
    size is within bounds; otherwise the derived status takes over.
    """
    derived = determine_group_status(student_count, group.min_size, group.max_size)
    if group.status == GroupStatus.INACTIVE:
        return GroupStatus.INACTIVE
    if group.status == GroupStatus.ACTIVE and derived == GroupStatus.READY:
        return GroupStatus.ACTIVE
    return derived


class RosterManager:
    """Membership changes and operator status toggles for groups."""

    def __init__(self, store: LedgerStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or utc_now

    def require_group(self, group_id: str) -> Group:
        group = self.store.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        return group

    def create_group(self, group: Group) -> Group:
        """Store a new group with its status derived from the initial roster."""
        status = determine_group_status(group.student_count, group.min_size, group.max_size)
        return self.store.create_group(group.model_copy(update={"status": status}))

    # -------------------------------------------------------------------------
    # Membership
    # -------------------------------------------------------------------------

    def assign_students(self, group_id: str, student_ids: list[str]) -> Group:
        group = self.require_group(group_id)
        students = list(dict.fromkeys([*group.students, *student_ids]))
        return self._save_roster(group, students)

    def remove_students(self, group_id: str, student_ids: list[str]) -> Group:
        group = self.require_group(group_id)
        removed = set(student_ids)
        students = [sid for sid in group.students if sid not in removed]
        return self._save_roster(group, students)

    def _save_roster(self, group: Group, students: list[str]) -> Group:
        status = status_after_membership_change(group, len(students))
        if status != group.status:
            logger.info(f"Group {group.id} status {group.status.value} -> {status.value} ({len(students)} students)")
        return self.store.save_group(group.model_copy(update={
            "students": students,
            "status": status,
            "status_changed_at": self.clock() if status != group.status else group.status_changed_at,
        }))

    def available_students(self, curriculum_id: str) -> list[Subscription]:
        """Active subscribers of a curriculum not yet placed in one of its active groups."""
        grouped = {
            student_id
            for group in self.store.list_groups(curriculum_id)
            if group.status == GroupStatus.ACTIVE
            for student_id in group.students
        }
        return [
            subscription
            for subscription in self.store.list_subscriptions(curriculum_id, SubscriptionStatus.ACTIVE)
            if subscription.student_id not in grouped
        ]

    # -------------------------------------------------------------------------
    # Operator toggle
    # -------------------------------------------------------------------------

    def change_group_status(self, group_id: str, status: GroupStatus) -> Group:
        """
        Activate or deactivate a group.

        Activation requires at least min_size students. Deactivation is
        always allowed.

        Raises:
            GroupNotFoundError, InvalidStatusChangeError
        """
        group = self.require_group(group_id)
        if status not in (GroupStatus.ACTIVE, GroupStatus.INACTIVE):
            raise InvalidStatusChangeError(
                group.status.value, status.value, "only active and inactive are set by hand"
            )
        if status == GroupStatus.ACTIVE and group.student_count < group.min_size:
            raise InvalidStatusChangeError(
                group.status.value, status.value,
                f"{group.student_count} students, minimum is {group.min_size}"
            )
        if status == GroupStatus.ACTIVE and group.student_count > group.max_size:
            raise InvalidStatusChangeError(
                group.status.value, status.value,
                f"{group.student_count} students, maximum is {group.max_size}"
            )

        changed = self.store.save_group(group.model_copy(update={
            "status": status,
            "status_changed_at": self.clock(),
        }))
        logger.info(f"Group {group_id} set to {status.value}")
        return changed
