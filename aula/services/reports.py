"""
Dashboard and report builders.

Everything here works on a GradebookSnapshot that has already been
fetched; an empty snapshot yields zero counts, empty series and None
averages rather than errors.
"""
import io
import logging
import re
import unicodedata
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence
from uuid import UUID

import pandas as pd
from jinja2 import Environment, FileSystemLoader, select_autoescape
from openpyxl.utils import get_column_letter

from aula.schemas.gradebook import PERIOD_KEYS, GradebookSnapshot, StudentGrades
from aula.schemas.reports import (
    CoursePerformance, DashboardSummary, DistributionBucket, ExportRow, RecentActivity,
    ReportsSummary, StudentSummary, TrendPoint,
)
from aula.services.grade_aggregation import (
    CourseAverage, RiskTier, StudentAverage, classify, count_by_tier, general_average, mean,
    overall_average, period_averages, period_mean, rank_courses, rank_students, rounded,
    student_averages, students_at_risk,
)
from aula.utils.dates import format_long_date, now_local

logger = logging.getLogger(__name__)

NO_DATA = "—"
NO_COURSE = "Sin curso"
SHEET_NAME = "Calificaciones"

DISTRIBUTION = [
    (RiskTier.EXCELLENT, "Excelente (4.5-5.0)", "hsl(142, 76%, 36%)"),
    (RiskTier.GOOD, "Bueno (3.5-4.4)", "hsl(221, 83%, 53%)"),
    (RiskTier.ACCEPTABLE, "Aceptable (3.0-3.4)", "hsl(38, 92%, 50%)"),
    (RiskTier.AT_RISK, "Bajo (< 3.0)", "hsl(0, 84%, 60%)"),
]

EXPORT_COLUMNS = {
    "student": "Estudiante",
    "document": "Documento",
    "course": "Curso",
    "p1": "P1",
    "p2": "P2",
    "p3": "P3",
    "p4": "P4",
    "average": "Promedio",
}
COLUMN_WIDTHS = [25, 15, 20, 12, 12, 12, 12, 15]

GRADE_CSS_CLASSES = {
    RiskTier.EXCELLENT: "grade-excellent",
    RiskTier.GOOD: "grade-good",
    RiskTier.ACCEPTABLE: "grade-acceptable",
    RiskTier.AT_RISK: "grade-poor",
}

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html"]),
)


def format_grade(value: Optional[float]) -> str:
    return f"{value:.2f}" if value is not None else NO_DATA


def grade_css_class(tier: Optional[RiskTier]) -> str:
    return GRADE_CSS_CLASSES[tier] if tier is not None else "grade-none"


def shorten(name: str, length: int = 20) -> str:
    return name if len(name) <= length else name[:length] + "..."


def to_student_summary(entry: StudentAverage) -> StudentSummary:
    return StudentSummary(
        id=entry.student.id,
        full_name=entry.student.full_name,
        course_name=entry.student.course_name,
        average=entry.average,
        tier=entry.tier,
    )


def to_course_performance(entry: CourseAverage) -> CoursePerformance:
    return CoursePerformance(
        id=entry.course.id,
        name=entry.course.name,
        short_name=shorten(entry.course.name),
        color=entry.course.color,
        students=entry.students,
        average=entry.average,
    )


# Chart series
def grade_distribution(students: Sequence[StudentGrades]) -> List[DistributionBucket]:
    counts = count_by_tier(students)
    return [
        DistributionBucket(tier=tier, name=name, value=counts[tier], color=color)
        for tier, name, color in DISTRIBUTION
    ]


def performance_trend(students: Sequence[StudentGrades]) -> List[TrendPoint]:
    """One point per period: mean of the per-student period averages. Periods nobody was graded in are left out."""
    trend = []
    for key in PERIOD_KEYS:
        means = [
            value for value in (period_mean(s.grades, key) for s in students)
            if value is not None
        ]
        if not means:
            continue
        trend.append(TrendPoint(period=key.label, average=rounded(mean(means), means)))
    return trend


# Tabular export
def export_rows(students: Sequence[StudentGrades]) -> List[ExportRow]:
    """One row per student with at least one grade."""
    rows = []
    for entry in student_averages(students):
        student = entry.student
        averages = period_averages(student.grades)
        rows.append(ExportRow(
            student=student.full_name,
            document=student.document_number or "",
            course=student.course_name or NO_COURSE,
            average=format_grade(entry.average),
            **{key.value: format_grade(averages[key]) for key in PERIOD_KEYS},
        ))
    return rows


def export_filename(course_name: Optional[str], extension: str, today=None) -> str:
    today = today or now_local().date()
    label = unicodedata.normalize("NFKD", course_name or "Todos").encode("ascii", "ignore").decode()
    label = re.sub(r"[^\w\-]+", "_", label).strip("_")
    return f"Calificaciones_{label}_{today.isoformat()}.{extension}"


def build_excel(rows: Sequence[ExportRow]) -> bytes:
    df = pd.DataFrame(
        [row.model_dump() for row in rows],
        columns=list(EXPORT_COLUMNS.keys()),
    ).rename(columns=EXPORT_COLUMNS)

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=SHEET_NAME, index=False)
        worksheet = writer.sheets[SHEET_NAME]
        for index, width in enumerate(COLUMN_WIDTHS, start=1):
            worksheet.column_dimensions[get_column_letter(index)].width = width
    logger.info(f"Built xlsx export with {len(df)} rows")
    buffer.seek(0)
    return buffer.getvalue()


def print_rows(students: Sequence[StudentGrades]) -> List[Dict]:
    rows = []
    for entry in student_averages(students):
        grades = entry.student.grades
        averages = period_averages(grades)
        cells = [
            (averages[key], classify(period_mean(grades, key))) for key in PERIOD_KEYS
        ] + [(entry.average, entry.tier)]
        rows.append({
            "student": entry.student.full_name,
            "document": entry.student.document_number or "",
            "cells": [{"text": format_grade(value), "css": grade_css_class(tier)} for value, tier in cells],
        })
    return rows


def render_print_html(
    students: Sequence[StudentGrades],
    course_name: Optional[str] = None,
    generated_at: Optional[datetime] = None,
    auto_print: bool = False,
) -> str:
    generated_at = generated_at or now_local()
    template = env.get_template("grades_report.html")
    return template.render(
        course_name=course_name,
        generated_on=format_long_date(generated_at.date()),
        periods=[key.label for key in PERIOD_KEYS],
        rows=print_rows(students),
        auto_print=auto_print,
    )


def build_pdf(html: str) -> bytes:
    import weasyprint

    pdf = weasyprint.HTML(string=html).write_pdf()
    logger.info(f"Rendered PDF export ({len(pdf)} bytes)")
    return pdf


# Summaries
def filter_students(students: Sequence[StudentGrades], course_id: Optional[UUID]) -> List[StudentGrades]:
    if course_id is None:
        return list(students)
    return [s for s in students if s.course_id == course_id]


def sort_recent_activity(items: Sequence[RecentActivity], limit: int = 5) -> List[RecentActivity]:
    return sorted(items, key=lambda item: item.created_at.replace(tzinfo=None), reverse=True)[:limit]


def build_dashboard_summary(
    snapshot: GradebookSnapshot,
    recent_activity: Sequence[RecentActivity] = (),
    at_risk_limit: int = 6,
    courses_limit: int = 6,
) -> DashboardSummary:
    students = snapshot.students
    at_risk = students_at_risk(students)

    return DashboardSummary(
        total_students=len(students),
        active_students=sum(1 for s in students if s.status == "active"),
        courses_count=len(snapshot.courses),
        general_average=general_average(students),
        at_risk_count=len(at_risk),
        students_at_risk=[to_student_summary(e) for e in at_risk[:at_risk_limit]],
        course_performance=[
            to_course_performance(e) for e in rank_courses(snapshot.courses, students, courses_limit)
        ],
        recent_activity=sort_recent_activity(recent_activity),
        generated_at=now_local(),
    )


def build_reports_summary(
    snapshot: GradebookSnapshot,
    course_id: Optional[UUID] = None,
    students_limit: int = 5,
    courses_limit: int = 5,
) -> ReportsSummary:
    """
    Reports page data. The course filter narrows every figure except the
    course comparison, which always spans all of the teacher's courses.
    """
    students = filter_students(snapshot.students, course_id)
    counts = count_by_tier(students)
    course_name = next((c.name for c in snapshot.courses if c.id == course_id), None)

    return ReportsSummary(
        course_id=course_id,
        course_name=course_name,
        total_students=len(students),
        graded_students=sum(1 for s in students if overall_average(s.grades) is not None),
        general_average=general_average(students),
        needs_support=counts[RiskTier.AT_RISK],
        excellent=counts[RiskTier.EXCELLENT],
        top_students=[to_student_summary(e) for e in rank_students(students, students_limit)],
        distribution=grade_distribution(students),
        trend=performance_trend(students),
        course_comparison=[
            to_course_performance(e)
            for e in rank_courses(snapshot.courses, snapshot.students, courses_limit)
        ],
        rows=export_rows(students),
        generated_at=now_local(),
    )
