"""
EduLedger Schemas - Pydantic models for the curriculum progression back office.

This module exports all schema classes for:
- Curriculum: levels, promotion policy, policy constants
- Attendance: sessions and per-student attendance entries
- Subscription: enrollment state, progress value, promotion and credit records
- Group: roster, status, group level pointer
- Promotion: readiness, preview/commit payloads, saga state
- Reports: progress and credit summaries
"""

# Curriculum schemas
from .curriculum import (
    Level,
    ProgressSettings,
    Curriculum,
    DEFAULT_MINIMUM_COMPLETION_RATE,
    DEFAULT_LEVEL_DURATION_DAYS,
    DEFAULT_SESSIONS_COUNT,
    DEFAULT_MIN_GROUP_SIZE,
    DEFAULT_MAX_GROUP_SIZE,
    EXPIRING_SOON_DAYS,
)

# Attendance schemas
from .attendance import (
    AttendanceStatus,
    AttendanceEntry,
    AttendanceSession,
    ATTENDED_STATUSES,
)

# Subscription schemas
from .subscription import (
    SubscriptionStatus,
    PromotionRecord,
    SubscriptionProgress,
    Subscription,
    CreditHistoryEntry,
)

# Group schemas
from .group import (
    GroupStatus,
    GroupProgress,
    Group,
)

# Promotion schemas
from .promotion import (
    PromotionCheck,
    ReadinessReason,
    StudentReadiness,
    GroupPromotionPreview,
    SagaStatus,
    FailedPromotion,
    GroupPromotionSaga,
    GroupPromotionOutcome,
)

# Report schemas
from .reports import (
    ProgressBand,
    CreditBand,
    StudentProgressRow,
    CurriculumProgressStats,
    GroupProgressStats,
    CreditRow,
    CreditOverview,
)

__all__ = [
    # Curriculum
    'Level',
    'ProgressSettings',
    'Curriculum',
    'DEFAULT_MINIMUM_COMPLETION_RATE',
    'DEFAULT_LEVEL_DURATION_DAYS',
    'DEFAULT_SESSIONS_COUNT',
    'DEFAULT_MIN_GROUP_SIZE',
    'DEFAULT_MAX_GROUP_SIZE',
    'EXPIRING_SOON_DAYS',
    # Attendance
    'AttendanceStatus',
    'AttendanceEntry',
    'AttendanceSession',
    'ATTENDED_STATUSES',
    # Subscription
    'SubscriptionStatus',
    'PromotionRecord',
    'SubscriptionProgress',
    'Subscription',
    'CreditHistoryEntry',
    # Group
    'GroupStatus',
    'GroupProgress',
    'Group',
    # Promotion
    'PromotionCheck',
    'ReadinessReason',
    'StudentReadiness',
    'GroupPromotionPreview',
    'SagaStatus',
    'FailedPromotion',
    'GroupPromotionSaga',
    'GroupPromotionOutcome',
    # Reports
    'ProgressBand',
    'CreditBand',
    'StudentProgressRow',
    'CurriculumProgressStats',
    'GroupProgressStats',
    'CreditRow',
    'CreditOverview',
]
