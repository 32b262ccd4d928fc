"""
Promotion payload schemas for EduLedger.

Defines the Pydantic models returned to callers of the promotion engine:
- Single-student promotion checks
- Group readiness records and the preview/commit payloads
- The persisted group promotion saga
"""

from pydantic import BaseModel, Field, computed_field
from typing import Optional
from datetime import datetime
from enum import Enum

from eduledger.config import DEFAULT_ACTOR


class PromotionCheck(BaseModel):
    """Dry-run evaluation of a single-student promotion (no writes)."""
    student_id: str
    curriculum_id: str
    current_level: int
    next_level: Optional[int] = None
    progress: float = 0.0
    required_progress: float
    credit: int = 0
    required_credit: Optional[int] = None
    can_promote: bool
    blocking_reason: Optional[str] = None  # exception class name of the first failed check


# -----------------------------------------------------------------------------
# Group readiness
# -----------------------------------------------------------------------------


class ReadinessReason(str, Enum):
    READY = "ready"
    NO_ACTIVE_SUBSCRIPTION = "no_active_subscription"
    INSUFFICIENT_CREDIT = "insufficient_credit"
    INSUFFICIENT_PROGRESS = "insufficient_progress"
    BEHIND_GROUP = "behind_group"          # student's own level below the group's
    ALREADY_ADVANCED = "already_advanced"  # student's own level above the group's


class StudentReadiness(BaseModel):
    student_id: str
    ready: bool
    reason: ReadinessReason
    progress: Optional[float] = None  # completion at the group's level
    credit: Optional[int] = None
    student_level: Optional[int] = None


class GroupPromotionPreview(BaseModel):
    """Readiness partition returned for operator review. Nothing has been written."""
    token: str
    group_id: str
    curriculum_id: str
    from_level: int
    to_level: int
    level_duration_days: int
    minimum_completion_rate: float
    ready: list[StudentReadiness]
    not_ready: list[StudentReadiness]
    projected_credit: dict[str, int] = {}  # ready student -> balance after promotion

    @computed_field
    @property
    def requires_confirmation(self) -> bool:
        return len(self.not_ready) > 0


# -----------------------------------------------------------------------------
# Saga
# -----------------------------------------------------------------------------


class SagaStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PARTIAL = "partial"  # finished with failures; group pointer left unchanged


class FailedPromotion(BaseModel):
    student_id: str
    reason: str
    detail: str = ""


class GroupPromotionSaga(BaseModel):
    """Persisted state of one committed group promotion."""
    token: str
    group_id: str
    curriculum_id: str
    from_level: int
    to_level: int
    selected: list[str]
    promoted: list[str] = []
    skipped: list[str] = []  # already past the group level, no write needed
    failed: list[FailedPromotion] = []
    advance_group: bool = False
    group_advanced: bool = False
    status: SagaStatus = SagaStatus.IN_PROGRESS
    actor: str = DEFAULT_ACTOR
    created_at: datetime
    completed_at: Optional[datetime] = None

    def remaining(self) -> list[str]:
        done = set(self.promoted) | set(self.skipped) | {f.student_id for f in self.failed}
        return [sid for sid in self.selected if sid not in done]


class GroupPromotionOutcome(BaseModel):
    token: str
    group_id: str
    from_level: int
    to_level: int
    promoted: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[FailedPromotion] = Field(default_factory=list)
    group_advanced: bool = False
    status: SagaStatus

    @classmethod
    def from_saga(cls, saga: GroupPromotionSaga) -> "GroupPromotionOutcome":
        return cls(
            token=saga.token,
            group_id=saga.group_id,
            from_level=saga.from_level,
            to_level=saga.to_level,
            promoted=list(saga.promoted),
            skipped=list(saga.skipped),
            failed=list(saga.failed),
            group_advanced=saga.group_advanced,
            status=saga.status,
        )
