"""
PromotionEngine - Level transitions for a single student.

Provides:
- Current-level completion from the attendance ledger
- Promotion checks (dry run with the figures behind the decision)
- Promote / demote / reset, each a single compare-and-swap write
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from eduledger.config import DEFAULT_ACTOR
from eduledger.schemas import (
    Curriculum,
    PromotionCheck,
    PromotionRecord,
    Subscription,
)

from .errors import (
    AlreadyAtFinalLevelError,
    AlreadyAtFirstLevelError,
    CurriculumNotFoundError,
    InsufficientCreditError,
    InsufficientProgressError,
    NoActiveSubscriptionError,
    PolicyViolationError,
)
from .progress import compute_level_completion
from .store import LedgerStore

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PromotionEngine:
    """
    Validate and execute level transitions.

    Reads the catalog, subscriptions and attendance from a LedgerStore and
    writes subscriptions back with compare-and-swap. A concurrent write to
    the same subscription surfaces as ConcurrencyConflictError.
    """

    def __init__(
        self,
        store: LedgerStore,
        clock: Optional[Callable[[], datetime]] = None,
        actor: str = DEFAULT_ACTOR,
    ):
        """
        Initialize engine.

        Args:
            store: LedgerStore holding catalog, ledger and subscriptions
            clock: Returns the current time (default: UTC now)
            actor: Name recorded on promotions, demotions and resets
        """
        self.store = store
        self.clock = clock or utc_now
        self.actor = actor

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def require_subscription(self, student_id: str, curriculum_id: str) -> Subscription:
        subscription = self.store.find_active_subscription(student_id, curriculum_id)
        if subscription is None:
            raise NoActiveSubscriptionError(student_id, curriculum_id)
        return subscription

    def require_curriculum(self, curriculum_id: str) -> Curriculum:
        curriculum = self.store.get_curriculum(curriculum_id)
        if curriculum is None or not curriculum.levels:
            raise CurriculumNotFoundError(curriculum_id)
        return curriculum

    def level_completion(self, student_id: str, curriculum_id: str, level: int) -> float:
        """Attendance-based completion (0-100) of one level for one student."""
        curriculum = self.store.get_curriculum(curriculum_id)
        if curriculum is None:
            return 0.0
        sessions = self.store.list_attendance_sessions(curriculum_id, level=level)
        return compute_level_completion(curriculum, level, student_id, sessions)

    # -------------------------------------------------------------------------
    # Promotion
    # -------------------------------------------------------------------------

    def build_promotion(
        self,
        subscription: Subscription,
        curriculum: Curriculum,
        progress: Optional[float] = None,
    ) -> tuple[Subscription, PromotionRecord]:
        """
        Compute the promoted subscription without writing it.

        Checks, in order: final level, current-level completion against the
        minimum rate (inclusive), credit against the next level's duration
        (inclusive). A caller that already has the current-level completion
        can pass it as progress.

        Raises:
            AlreadyAtFinalLevelError, InsufficientProgressError,
            InsufficientCreditError
        """
        current_level = subscription.current_level
        if current_level >= curriculum.final_level:
            raise AlreadyAtFinalLevelError(current_level)

        if progress is None:
            progress = self.level_completion(subscription.student_id, curriculum.id, current_level)
        required = curriculum.minimum_completion_rate
        if progress < required:
            raise InsufficientProgressError(required=required, actual=progress)

        next_level = current_level + 1
        duration = curriculum.level_duration(next_level)
        if subscription.access_credit_days < duration:
            raise InsufficientCreditError(required=duration, available=subscription.access_credit_days)

        now = self.clock()
        remaining = subscription.access_credit_days - duration
        record = PromotionRecord(
            promoted_at=now,
            promoted_by=self.actor,
            from_level=current_level,
            to_level=next_level,
            progress_at_promotion=progress,
            credits_deducted=duration,
            remaining_credits=remaining,
        )
        progress_value = subscription.progress.model_copy(update={
            "completed_levels": subscription.progress.completed_levels | {current_level},
            "last_update": now,
            "last_promotion": record,
            "history": [*subscription.progress.history, record],
        })
        promoted = subscription.model_copy(update={
            "current_level": next_level,
            "access_credit_days": remaining,
            "current_level_access_expires_at": now + timedelta(days=duration),
            "progress": progress_value,
        })
        return promoted, record

    def promote_student(self, student_id: str, curriculum_id: str) -> PromotionRecord:
        """
        Promote a student to the next level of a curriculum.

        All five changed fields (credit, expiry, completed levels, level,
        last promotion) land in one write, or none do.

        Returns:
            The PromotionRecord appended to the subscription's history

        Raises:
            NoActiveSubscriptionError, CurriculumNotFoundError,
            AlreadyAtFinalLevelError, InsufficientProgressError,
            InsufficientCreditError, ConcurrencyConflictError
        """
        subscription = self.require_subscription(student_id, curriculum_id)
        curriculum = self.require_curriculum(curriculum_id)
        try:
            promoted, record = self.build_promotion(subscription, curriculum)
        except PolicyViolationError as e:
            logger.info(f"Promotion of {student_id} in {curriculum_id} rejected: {e}")
            raise

        self.store.save_subscription(promoted)
        logger.info(
            f"Promoted {student_id} in {curriculum_id}: level {record.from_level} -> {record.to_level}, "
            f"progress {record.progress_at_promotion:.1f}%, credit left {record.remaining_credits} days"
        )
        return record

    def check_promotion(self, student_id: str, curriculum_id: str) -> PromotionCheck:
        """
        Evaluate promotion without writing anything.

        Missing subscription or curriculum still raise; policy failures are
        reported in the returned check.
        """
        subscription = self.require_subscription(student_id, curriculum_id)
        curriculum = self.require_curriculum(curriculum_id)

        current_level = subscription.current_level
        at_final = current_level >= curriculum.final_level
        next_level = None if at_final else current_level + 1
        progress = self.level_completion(student_id, curriculum_id, current_level)
        blocking_reason = None
        try:
            self.build_promotion(subscription, curriculum, progress=progress)
        except PolicyViolationError as e:
            blocking_reason = type(e).__name__

        return PromotionCheck(
            student_id=student_id,
            curriculum_id=curriculum_id,
            current_level=current_level,
            next_level=next_level,
            progress=progress,
            required_progress=curriculum.minimum_completion_rate,
            credit=subscription.access_credit_days,
            required_credit=None if next_level is None else curriculum.level_duration(next_level),
            can_promote=blocking_reason is None,
            blocking_reason=blocking_reason,
        )

    # -------------------------------------------------------------------------
    # Demotion and reset
    # -------------------------------------------------------------------------

    def demote_student(self, student_id: str, curriculum_id: str) -> Subscription:
        """
        Move a student back one level.

        Completed levels at or above the new level are dropped. Credit spent
        on the earlier promotion is not refunded.

        Raises:
            NoActiveSubscriptionError, AlreadyAtFirstLevelError,
            ConcurrencyConflictError
        """
        subscription = self.require_subscription(student_id, curriculum_id)
        if subscription.current_level <= 1:
            raise AlreadyAtFirstLevelError()

        now = self.clock()
        new_level = subscription.current_level - 1
        progress_value = subscription.progress.model_copy(update={
            "completed_levels": {lvl for lvl in subscription.progress.completed_levels if lvl < new_level},
            "last_update": now,
            "demoted_by": self.actor,
            "demoted_at": now,
        })
        demoted = self.store.save_subscription(subscription.model_copy(update={
            "current_level": new_level,
            "progress": progress_value,
        }))
        logger.info(f"Demoted {student_id} in {curriculum_id} to level {new_level}")
        return demoted

    def reset_student_progress(self, student_id: str, curriculum_id: str) -> Subscription:
        """
        Send a student back to level 1 with no completed levels.

        No progress check is made and credit is untouched. Promotion history
        is kept for audit; the last-promotion marker is cleared.

        Raises:
            NoActiveSubscriptionError, ConcurrencyConflictError
        """
        subscription = self.require_subscription(student_id, curriculum_id)

        now = self.clock()
        progress_value = subscription.progress.model_copy(update={
            "completed_levels": set(),
            "last_update": now,
            "last_promotion": None,
            "reset_by": self.actor,
            "reset_at": now,
        })
        reset = self.store.save_subscription(subscription.model_copy(update={
            "current_level": 1,
            "progress": progress_value,
        }))
        logger.info(f"Reset progress of {student_id} in {curriculum_id}")
        return reset
