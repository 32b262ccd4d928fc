"""
Reporting schemas for EduLedger.

Read-only summaries of curriculum progress, group progress and credit
balances for the back-office dashboards.
"""

from pydantic import BaseModel
from typing import Optional
from enum import Enum


class ProgressBand(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    WARNING = "warning"
    CRITICAL = "critical"


class CreditBand(str, Enum):
    CRITICAL = "critical"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class StudentProgressRow(BaseModel):
    student_id: str
    subscription_id: str
    current_level: int
    completed_levels: int
    progress_percentage: float        # completed levels plus weighted current-level completion, over total levels
    band: ProgressBand
    current_level_completion: float   # attendance-based, current level only
    can_promote: bool
    access_credit_days: int
    days_left: Optional[int] = None
    access_expired: bool = False
    expiring_soon: bool = False


class CurriculumProgressStats(BaseModel):
    curriculum_id: str
    total_students: int
    total_groups: int
    active_groups: int
    total_levels: int
    avg_progress: float
    band_counts: dict[ProgressBand, int]
    expiring_soon: int
    students: list[StudentProgressRow]


class GroupProgressStats(BaseModel):
    group_id: str
    curriculum_id: str
    total_students: int
    avg_progress: float
    current_group_level: int
    group_completed_levels: int
    students: list[StudentProgressRow]


class CreditRow(BaseModel):
    student_id: str
    subscription_id: str
    curriculum_id: str
    credit_days: int
    band: CreditBand
    access_expired: bool
    days_until_expiry: Optional[int] = None
    current_level: int


class CreditOverview(BaseModel):
    total_active_students: int
    total_credits: int
    low_credit_students: int
    expired_students: int
    average_credit: float
    students: list[CreditRow]  # expired first, then lowest balance
