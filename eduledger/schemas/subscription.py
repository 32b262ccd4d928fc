"""
Subscription schemas for EduLedger.

Defines Pydantic models for the subscription ledger including:
- Subscription status
- Promotion records
- Versioned progress value (completed levels, audit fields, history)
- Credit top-up history entries
"""

import math
from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from enum import Enum

from eduledger.config import DEFAULT_ACTOR


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PromotionRecord(BaseModel):
    """Audit record of one successful promotion."""
    promoted_at: datetime
    promoted_by: str = DEFAULT_ACTOR
    from_level: int = Field(..., ge=1)
    to_level: int = Field(..., ge=2)
    progress_at_promotion: float = Field(..., ge=0.0, le=100.0)
    credits_deducted: int = Field(..., ge=1)
    remaining_credits: int = Field(..., ge=0)


class SubscriptionProgress(BaseModel):
    """
    Progress value carried by a subscription.

    Every transition builds a new instance from the old one with an explicit
    field update; a rejected operation never touches the stored value.
    """
    completed_levels: set[int] = set()
    last_update: Optional[datetime] = None
    last_promotion: Optional[PromotionRecord] = None
    demoted_by: Optional[str] = None
    demoted_at: Optional[datetime] = None
    reset_by: Optional[str] = None
    reset_at: Optional[datetime] = None
    history: list[PromotionRecord] = []


class Subscription(BaseModel):
    """Enrollment of one student in one curriculum."""
    id: str
    student_id: str
    curriculum_id: str
    status: SubscriptionStatus = SubscriptionStatus.PENDING
    current_level: int = Field(default=1, ge=1)
    access_credit_days: int = Field(default=0, ge=0)
    current_level_access_expires_at: Optional[datetime] = None
    progress: SubscriptionProgress = Field(default_factory=SubscriptionProgress)
    activated_at: Optional[datetime] = None
    version: int = 0  # optimistic concurrency token, bumped by the store

    @model_validator(mode='after')
    def completed_below_current(self):
        ahead = [lvl for lvl in self.progress.completed_levels if lvl >= self.current_level]
        if ahead:
            raise ValueError(
                f'completed_levels {sorted(ahead)} must be below current_level {self.current_level}'
            )
        return self

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    # Expiry is evaluated lazily on read; status is never rewritten by a clock.

    def access_expired(self, now: datetime) -> bool:
        expires_at = self.current_level_access_expires_at
        return expires_at is not None and expires_at < now

    def days_left(self, now: datetime) -> Optional[int]:
        """Whole days (rounded up) until current-level access lapses."""
        expires_at = self.current_level_access_expires_at
        if expires_at is None:
            return None
        return math.ceil((expires_at - now).total_seconds() / 86400)


class CreditHistoryEntry(BaseModel):
    """One access-credit top-up."""
    id: Optional[int] = None
    student_id: str
    curriculum_id: str
    subscription_id: str
    old_credit: int
    new_credit: int
    added_days: int = Field(..., ge=1)
    reason: str = ""
    actor: str = DEFAULT_ACTOR
    created_at: datetime
