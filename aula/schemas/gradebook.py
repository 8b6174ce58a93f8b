"""
Data-transfer objects consumed by the grade aggregation functions.

Rows coming out of the database are turned into these models once, in
aula.crud.gradebook. Everything downstream reads typed attributes only.
"""
import re
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PeriodKey(str, Enum):
    P1 = "p1"
    P2 = "p2"
    P3 = "p3"
    P4 = "p4"

    @property
    def label(self) -> str:
        return self.value.upper()


PERIOD_KEYS = list(PeriodKey)

_PERIOD_NAME_PATTERNS = [
    re.compile(r"\bPer[ií][oó]do\s+(\d+)", re.IGNORECASE),
    re.compile(r"\bPeriod\s+(\d+)", re.IGNORECASE),
    re.compile(r"^P(\d+)$", re.IGNORECASE),
]


def period_key_from_name(name: str) -> Optional[PeriodKey]:
    """Map a period row name ("Periodo 2", "P3", ...) to its bucket, or None."""
    for pattern in _PERIOD_NAME_PATTERNS:
        match = pattern.search((name or "").strip())
        if match:
            number = int(match.group(1))
            if 1 <= number <= len(PERIOD_KEYS):
                return PERIOD_KEYS[number - 1]
            return None
    return None


class GradeItem(BaseModel):
    value: float = Field(..., ge=1.0, le=5.0)
    title: Optional[str] = None
    created_at: Optional[datetime] = None


class PeriodGrades(BaseModel):
    p1: List[GradeItem] = []
    p2: List[GradeItem] = []
    p3: List[GradeItem] = []
    p4: List[GradeItem] = []

    def for_period(self, period: PeriodKey) -> List[GradeItem]:
        return getattr(self, period.value)

    def values(self, period: Optional[PeriodKey] = None) -> List[float]:
        if period is not None:
            return [g.value for g in self.for_period(period)]
        return [g.value for key in PERIOD_KEYS for g in self.for_period(key)]


class StudentGrades(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    document_number: Optional[str] = None
    course_id: Optional[UUID] = None
    course_name: Optional[str] = None
    status: str = "active"
    grades: PeriodGrades = PeriodGrades()

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class CourseInfo(BaseModel):
    id: UUID
    name: str
    color: Optional[str] = None


class GradebookSnapshot(BaseModel):
    """Everything one dashboard or report pass needs, fetched in one go."""
    courses: List[CourseInfo] = []
    students: List[StudentGrades] = []
