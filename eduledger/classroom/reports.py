"""
Reports - Read-only progress and credit summaries.

Nothing here writes to the store. Expiry is evaluated against the clock at
read time, so a lapsed subscription shows as expired without any status
change.
"""

import logging
from typing import Optional

from eduledger.schemas import (
    EXPIRING_SOON_DAYS,
    CreditBand,
    CreditOverview,
    CreditRow,
    Curriculum,
    CurriculumProgressStats,
    GroupProgressStats,
    GroupStatus,
    ProgressBand,
    StudentProgressRow,
    Subscription,
    SubscriptionStatus,
)

from .errors import CurriculumNotFoundError, GroupNotFoundError, PolicyViolationError
from .progress import overall_progress
from .promotion import PromotionEngine

logger = logging.getLogger(__name__)

LOW_CREDIT_DAYS = 7


def progress_band(percentage: float) -> ProgressBand:
    if percentage >= 80:
        return ProgressBand.EXCELLENT
    if percentage >= 60:
        return ProgressBand.GOOD
    if percentage >= 30:
        return ProgressBand.WARNING
    return ProgressBand.CRITICAL


def credit_band(days: int) -> CreditBand:
    if days <= 3:
        return CreditBand.CRITICAL
    if days <= LOW_CREDIT_DAYS:
        return CreditBand.LOW
    if days <= 30:
        return CreditBand.MEDIUM
    return CreditBand.HIGH


class ProgressReporter:
    """Dashboard figures built from the engine's view of the ledger."""

    def __init__(self, engine: PromotionEngine):
        self.engine = engine
        self.store = engine.store

    def student_row(self, subscription: Subscription, curriculum: Curriculum) -> StudentProgressRow:
        now = self.engine.clock()
        completion = self.engine.level_completion(
            subscription.student_id, curriculum.id, subscription.current_level
        )
        percentage = overall_progress(curriculum, subscription, completion)
        try:
            self.engine.build_promotion(subscription, curriculum, progress=completion)
            can_promote = True
        except PolicyViolationError:
            can_promote = False

        days_left = subscription.days_left(now)
        expired = subscription.access_expired(now)
        return StudentProgressRow(
            student_id=subscription.student_id,
            subscription_id=subscription.id,
            current_level=subscription.current_level,
            completed_levels=len(subscription.progress.completed_levels),
            progress_percentage=round(percentage, 1),
            band=progress_band(percentage),
            current_level_completion=round(completion, 1),
            can_promote=can_promote,
            access_credit_days=subscription.access_credit_days,
            days_left=days_left,
            access_expired=expired,
            expiring_soon=not expired and days_left is not None and days_left <= EXPIRING_SOON_DAYS,
        )

    def curriculum_progress_stats(self, curriculum_id: str) -> CurriculumProgressStats:
        """Progress of every active subscriber of a curriculum."""
        curriculum = self.store.get_curriculum(curriculum_id)
        if curriculum is None:
            raise CurriculumNotFoundError(curriculum_id)

        rows = [
            self.student_row(subscription, curriculum)
            for subscription in self.store.list_subscriptions(curriculum_id, SubscriptionStatus.ACTIVE)
        ]
        groups = self.store.list_groups(curriculum_id)
        band_counts = {band: 0 for band in ProgressBand}
        for row in rows:
            band_counts[row.band] += 1

        return CurriculumProgressStats(
            curriculum_id=curriculum_id,
            total_students=len(rows),
            total_groups=len(groups),
            active_groups=sum(1 for g in groups if g.status == GroupStatus.ACTIVE),
            total_levels=curriculum.total_levels,
            avg_progress=_average([row.progress_percentage for row in rows]),
            band_counts=band_counts,
            expiring_soon=sum(1 for row in rows if row.expiring_soon),
            students=rows,
        )

    def group_progress_stats(self, group_id: str) -> GroupProgressStats:
        """Progress of a group's roster; students without an active subscription are left out."""
        group = self.store.get_group(group_id)
        if group is None:
            raise GroupNotFoundError(group_id)
        curriculum = self.store.get_curriculum(group.curriculum_id)
        if curriculum is None:
            raise CurriculumNotFoundError(group.curriculum_id)

        rows = []
        for student_id in group.students:
            subscription = self.store.find_active_subscription(student_id, curriculum.id)
            if subscription is not None:
                rows.append(self.student_row(subscription, curriculum))

        return GroupProgressStats(
            group_id=group.id,
            curriculum_id=curriculum.id,
            total_students=group.student_count,
            avg_progress=_average([row.progress_percentage for row in rows]),
            current_group_level=group.progress.current_level,
            group_completed_levels=len(group.progress.completed_levels),
            students=rows,
        )

    def credit_overview(self, curriculum_id: Optional[str] = None) -> CreditOverview:
        """
        Credit balances of active subscriptions.

        Rows are ordered with lapsed access first, then by lowest balance.
        """
        now = self.engine.clock()
        subscriptions = self.store.list_subscriptions(curriculum_id, SubscriptionStatus.ACTIVE)
        rows = [
            CreditRow(
                student_id=s.student_id,
                subscription_id=s.id,
                curriculum_id=s.curriculum_id,
                credit_days=s.access_credit_days,
                band=credit_band(s.access_credit_days),
                access_expired=s.access_expired(now),
                days_until_expiry=s.days_left(now),
                current_level=s.current_level,
            )
            for s in subscriptions
        ]
        rows.sort(key=lambda row: (not row.access_expired, row.credit_days))

        total = sum(row.credit_days for row in rows)
        overview = CreditOverview(
            total_active_students=len(rows),
            total_credits=total,
            low_credit_students=sum(1 for row in rows if row.credit_days <= LOW_CREDIT_DAYS),
            expired_students=sum(1 for row in rows if row.access_expired),
            average_credit=round(total / len(rows), 1) if rows else 0.0,
            students=rows,
        )
        logger.debug(
            f"Credit overview: {overview.total_active_students} students, "
            f"{overview.low_credit_students} low, {overview.expired_students} expired"
        )
        return overview


def _average(values: list[float]) -> float:
    return round(sum(values) / len(values), 1) if values else 0.0
