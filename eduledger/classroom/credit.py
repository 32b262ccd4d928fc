"""
SubscriptionLedger - Enrollment and access-credit bookkeeping.

Provides:
- Enrollment (pending subscription with a prepaid credit balance)
- Activation: pay for level 1 out of the credit balance
- Credit top-ups with an audit trail
- Cancellation

Level transitions themselves belong to PromotionEngine.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional

from eduledger.config import DEFAULT_ACTOR
from eduledger.schemas import (
    CreditHistoryEntry,
    Subscription,
    SubscriptionProgress,
    SubscriptionStatus,
)

from .errors import (
    CurriculumNotFoundError,
    InsufficientCreditError,
    InvalidStatusChangeError,
    NoActiveSubscriptionError,
    SubscriptionNotFoundError,
)
from .promotion import utc_now
from .store import LedgerStore

logger = logging.getLogger(__name__)


class SubscriptionLedger:
    """Bookkeeping on subscriptions outside of level transitions."""

    def __init__(
        self,
        store: LedgerStore,
        clock: Optional[Callable[[], datetime]] = None,
        actor: str = DEFAULT_ACTOR,
    ):
        self.store = store
        self.clock = clock or utc_now
        self.actor = actor

    def require_subscription(self, subscription_id: str) -> Subscription:
        subscription = self.store.get_subscription(subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(subscription_id)
        return subscription

    def enroll(self, student_id: str, curriculum_id: str, access_credit_days: int = 0) -> Subscription:
        """Create a pending subscription holding a prepaid credit balance."""
        if self.store.get_curriculum(curriculum_id) is None:
            raise CurriculumNotFoundError(curriculum_id)
        subscription = Subscription(
            id=uuid.uuid4().hex,
            student_id=student_id,
            curriculum_id=curriculum_id,
            status=SubscriptionStatus.PENDING,
            access_credit_days=access_credit_days,
        )
        return self.store.create_subscription(subscription)

    def activate_subscription(self, subscription_id: str) -> Subscription:
        """
        Activate a pending subscription.

        The first level's duration is paid from the credit balance and starts
        the level-1 access window.

        Raises:
            SubscriptionNotFoundError, InvalidStatusChangeError,
            CurriculumNotFoundError, InsufficientCreditError,
            ConcurrencyConflictError
        """
        subscription = self.require_subscription(subscription_id)
        if subscription.status != SubscriptionStatus.PENDING:
            raise InvalidStatusChangeError(subscription.status.value, SubscriptionStatus.ACTIVE.value)

        curriculum = self.store.get_curriculum(subscription.curriculum_id)
        if curriculum is None or not curriculum.levels:
            raise CurriculumNotFoundError(subscription.curriculum_id)

        duration = curriculum.level_duration(1)
        if subscription.access_credit_days < duration:
            raise InsufficientCreditError(required=duration, available=subscription.access_credit_days)

        now = self.clock()
        activated = self.store.save_subscription(subscription.model_copy(update={
            "status": SubscriptionStatus.ACTIVE,
            "activated_at": now,
            "current_level": 1,
            "access_credit_days": subscription.access_credit_days - duration,
            "current_level_access_expires_at": now + timedelta(days=duration),
            "progress": SubscriptionProgress(last_update=now),
        }))
        logger.info(
            f"Activated subscription {subscription_id} for {subscription.student_id}, "
            f"credit left {activated.access_credit_days} days"
        )
        return activated

    def add_credit_days(
        self,
        student_ids: list[str],
        curriculum_id: str,
        days: int,
        reason: str = "",
    ) -> list[CreditHistoryEntry]:
        """
        Top up the credit balance of each student's subscription to a curriculum.

        An expired subscription is marked active again; a pending one stays
        pending until activated. Every subscription is looked up before
        anything is written, and the whole batch lands in one transaction
        together with its history entries.

        Raises:
            ValueError: If days is not positive
            NoActiveSubscriptionError: If a student has no subscription to the curriculum
            ConcurrencyConflictError: If a subscription changed during the batch
        """
        if days <= 0:
            raise ValueError(f"Credit top-up must be positive, got {days}")

        subscriptions = [
            self._latest_subscription(student_id, curriculum_id)
            for student_id in dict.fromkeys(student_ids)
        ]

        now = self.clock()
        top_ups = []
        for subscription in subscriptions:
            old_credit = subscription.access_credit_days
            status = subscription.status
            if status == SubscriptionStatus.EXPIRED:
                status = SubscriptionStatus.ACTIVE
            updated = subscription.model_copy(update={
                "access_credit_days": old_credit + days,
                "status": status,
            })
            entry = CreditHistoryEntry(
                student_id=subscription.student_id,
                curriculum_id=curriculum_id,
                subscription_id=subscription.id,
                old_credit=old_credit,
                new_credit=old_credit + days,
                added_days=days,
                reason=reason,
                actor=self.actor,
                created_at=now,
            )
            top_ups.append((updated, entry))

        written = self.store.add_credit_with_history(top_ups)
        for _, entry in written:
            logger.info(
                f"Added {days} credit days to {entry.student_id} ({entry.old_credit} -> {entry.new_credit})"
            )
        return [entry for _, entry in written]

    def _latest_subscription(self, student_id: str, curriculum_id: str) -> Subscription:
        # active first, then any non-cancelled subscription (renewal of an expired one)
        subscription = self.store.find_active_subscription(student_id, curriculum_id)
        if subscription is not None:
            return subscription
        candidates = [
            s for s in self.store.list_subscriptions(curriculum_id)
            if s.student_id == student_id and s.status != SubscriptionStatus.CANCELLED
        ]
        if not candidates:
            raise NoActiveSubscriptionError(student_id, curriculum_id)
        return candidates[-1]

    def cancel_subscription(self, subscription_id: str) -> Subscription:
        subscription = self.require_subscription(subscription_id)
        if subscription.status == SubscriptionStatus.CANCELLED:
            raise InvalidStatusChangeError(subscription.status.value, SubscriptionStatus.CANCELLED.value)
        cancelled = self.store.save_subscription(
            subscription.model_copy(update={"status": SubscriptionStatus.CANCELLED})
        )
        logger.info(f"Cancelled subscription {subscription_id}")
        return cancelled
