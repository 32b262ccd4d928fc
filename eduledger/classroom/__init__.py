"""
EduLedger Classroom - Runtime components for curriculum progression.

This module provides:
- LedgerStore: SQLite persistence with versioned writes
- PromotionEngine: Single-student promote / demote / reset
- GroupPromoter: Preview and saga-backed commit of group promotions
- RosterManager: Group membership and status toggles
- SubscriptionLedger: Enrollment, activation and credit top-ups
- ProgressReporter: Progress and credit summaries
"""

from .errors import (
    LedgerError,
    MissingEntityError,
    NoActiveSubscriptionError,
    SubscriptionNotFoundError,
    CurriculumNotFoundError,
    GroupNotFoundError,
    PolicyViolationError,
    AlreadyAtFinalLevelError,
    AlreadyAtFirstLevelError,
    InsufficientProgressError,
    InsufficientCreditError,
    InvalidStatusChangeError,
    ConcurrencyConflictError,
)

from .store import LedgerStore

from .progress import (
    compute_level_completion,
    overall_progress,
)

from .promotion import (
    PromotionEngine,
    utc_now,
)

from .group_promotion import GroupPromoter

from .roster import (
    RosterManager,
    determine_group_status,
    status_after_membership_change,
)

from .credit import SubscriptionLedger

from .reports import (
    ProgressReporter,
    progress_band,
    credit_band,
    LOW_CREDIT_DAYS,
)

__all__ = [
    # Errors
    "LedgerError",
    "MissingEntityError",
    "NoActiveSubscriptionError",
    "SubscriptionNotFoundError",
    "CurriculumNotFoundError",
    "GroupNotFoundError",
    "PolicyViolationError",
    "AlreadyAtFinalLevelError",
    "AlreadyAtFirstLevelError",
    "InsufficientProgressError",
    "InsufficientCreditError",
    "InvalidStatusChangeError",
    "ConcurrencyConflictError",
    # Store
    "LedgerStore",
    # Progress
    "compute_level_completion",
    "overall_progress",
    # Promotion
    "PromotionEngine",
    "utc_now",
    "GroupPromoter",
    # Roster
    "RosterManager",
    "determine_group_status",
    "status_after_membership_change",
    # Credit
    "SubscriptionLedger",
    # Reports
    "ProgressReporter",
    "progress_band",
    "credit_band",
    "LOW_CREDIT_DAYS",
]
