"""
Attendance schemas for EduLedger.

Attendance sessions are recorded by trainers outside the engine and are
read-only input to the progress calculator.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    LATE = "late"
    ABSENT = "absent"


# present and late both count as attended
ATTENDED_STATUSES = frozenset({AttendanceStatus.PRESENT, AttendanceStatus.LATE})


class AttendanceEntry(BaseModel):
    student_id: str
    status: AttendanceStatus
    notes: Optional[str] = None


class AttendanceSession(BaseModel):
    """One recorded session of a group at a curriculum level."""
    id: Optional[int] = None  # assigned by the store
    curriculum_id: str
    group_id: Optional[str] = None
    level: int = Field(..., ge=1)
    session_number: int = Field(..., ge=1)
    session_date: Optional[datetime] = None
    topic: Optional[str] = None
    attendance: list[AttendanceEntry] = []

    def status_for(self, student_id: str) -> Optional[AttendanceStatus]:
        """Status of the student's first entry in this session, if any."""
        for entry in self.attendance:
            if entry.student_id == student_id:
                return entry.status
        return None

    def attended_by(self, student_id: str) -> bool:
        return self.status_for(student_id) in ATTENDED_STATUSES
