from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel

from aula.services.grade_aggregation import RiskTier


class DistributionBucket(BaseModel):
    tier: RiskTier
    name: str
    value: int
    color: str


class TrendPoint(BaseModel):
    period: str
    average: float


class StudentSummary(BaseModel):
    id: UUID
    full_name: str
    course_name: Optional[str] = None
    average: float
    tier: RiskTier


class CoursePerformance(BaseModel):
    id: UUID
    name: str
    short_name: str
    color: Optional[str] = None
    students: int
    average: float


class ExportRow(BaseModel):
    student: str
    document: str
    course: str
    p1: str
    p2: str
    p3: str
    p4: str
    average: str


class RecentActivity(BaseModel):
    id: UUID
    kind: str
    message: str
    course: Optional[str] = None
    created_at: datetime


class DashboardSummary(BaseModel):
    total_students: int
    active_students: int
    courses_count: int
    general_average: Optional[float] = None
    at_risk_count: int
    students_at_risk: List[StudentSummary]
    course_performance: List[CoursePerformance]
    recent_activity: List[RecentActivity]
    generated_at: datetime


class ReportsSummary(BaseModel):
    course_id: Optional[UUID] = None
    course_name: Optional[str] = None
    total_students: int
    graded_students: int
    general_average: Optional[float] = None
    needs_support: int
    excellent: int
    top_students: List[StudentSummary]
    distribution: List[DistributionBucket]
    trend: List[TrendPoint]
    course_comparison: List[CoursePerformance]
    rows: List[ExportRow]
    generated_at: datetime
