"""
Group roster schemas for EduLedger.

A group paces its students through a curriculum together. Its own level
pointer mirrors, but is not synchronized with, its members' subscriptions.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from enum import Enum


class GroupStatus(str, Enum):
    PENDING = "pending"      # below minimum size
    READY = "ready"          # within size bounds
    ACTIVE = "active"        # operator toggle
    INACTIVE = "inactive"    # operator toggle
    OVERFULL = "overfull"    # above maximum size


class GroupProgress(BaseModel):
    current_level: int = Field(default=1, ge=1)
    completed_levels: set[int] = set()
    last_update: Optional[datetime] = None
    promoted_by: Optional[str] = None


class Group(BaseModel):
    id: str
    curriculum_id: str
    name: str = ""
    students: list[str] = []
    min_size: int = Field(default=1, ge=0)
    max_size: int = Field(default=20, ge=1)
    trainer_id: Optional[str] = None
    status: GroupStatus = GroupStatus.PENDING
    progress: GroupProgress = Field(default_factory=GroupProgress)
    status_changed_at: Optional[datetime] = None
    version: int = 0

    @field_validator('students')
    @classmethod
    def unique_students(cls, v):
        # keep first occurrence order
        return list(dict.fromkeys(v))

    @model_validator(mode='after')
    def size_bounds(self):
        if self.min_size > self.max_size:
            raise ValueError('min_size must not exceed max_size')
        return self

    @property
    def student_count(self) -> int:
        return len(self.students)
