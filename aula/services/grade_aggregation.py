"""
Grade aggregation, risk classification and ranking.

Pure functions over the DTOs in aula.schemas.gradebook. A student or a
period without grades has an average of None ("no data"). None is never
folded into a sum, a tier or a ranking.

Tiers, rankings and course figures are computed from unrounded means;
only the values handed back to clients are rounded to two decimals.
"""
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from aula.schemas.gradebook import PERIOD_KEYS, CourseInfo, PeriodGrades, PeriodKey, StudentGrades

PASSING_GRADE = 3.0
ACCEPTABLE_THRESHOLD = 3.0
GOOD_THRESHOLD = 3.5
EXCELLENT_THRESHOLD = 4.5


class RiskTier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    ACCEPTABLE = "acceptable"
    AT_RISK = "at_risk"


class PeriodStats(BaseModel):
    average: Optional[float] = None
    highest: Optional[float] = None
    lowest: Optional[float] = None
    passing: int = 0
    failing: int = 0
    graded: int = 0
    total: int = 0


class StudentAverage(BaseModel):
    student: StudentGrades
    mean: float
    average: float
    tier: RiskTier


class CourseAverage(BaseModel):
    course: CourseInfo
    mean: float
    average: float
    students: int
    graded_students: int


def mean(values: Iterable[float]) -> Optional[float]:
    values = list(values)
    if not values:
        return None
    return sum(values) / len(values)


def rounded(value: Optional[float], values: Sequence[float] = ()) -> Optional[float]:
    """Two-decimal display value, kept within the range of ``values`` when given."""
    if value is None:
        return None
    result = round(value, 2)
    if values:
        result = min(max(result, min(values)), max(values))
    return result


def average(values: Iterable[float]) -> Optional[float]:
    values = list(values)
    return rounded(mean(values), values)


def period_mean(grades: PeriodGrades, period: PeriodKey) -> Optional[float]:
    return mean(grades.values(period))


def period_average(grades: PeriodGrades, period: PeriodKey) -> Optional[float]:
    return average(grades.values(period))


def period_averages(grades: PeriodGrades) -> Dict[PeriodKey, Optional[float]]:
    return {key: period_average(grades, key) for key in PERIOD_KEYS}


def overall_mean(grades: PeriodGrades) -> Optional[float]:
    return mean(grades.values())


def overall_average(grades: PeriodGrades) -> Optional[float]:
    """Mean of every grade value across all periods."""
    return average(grades.values())


def classify(value: Optional[float]) -> Optional[RiskTier]:
    if value is None:
        return None
    if value >= EXCELLENT_THRESHOLD:
        return RiskTier.EXCELLENT
    if value >= GOOD_THRESHOLD:
        return RiskTier.GOOD
    if value >= ACCEPTABLE_THRESHOLD:
        return RiskTier.ACCEPTABLE
    return RiskTier.AT_RISK


def student_tier(grades: PeriodGrades) -> Optional[RiskTier]:
    return classify(overall_mean(grades))


def student_averages(students: Iterable[StudentGrades]) -> List[StudentAverage]:
    """Students that have at least one grade, with their overall average and tier, in input order."""
    results = []
    for student in students:
        values = student.grades.values()
        value = mean(values)
        if value is None:
            continue
        results.append(StudentAverage(
            student=student,
            mean=value,
            average=rounded(value, values),
            tier=classify(value),
        ))
    return results


def period_stats(students: Sequence[StudentGrades], period: PeriodKey) -> PeriodStats:
    """
    Statistics of one period across a set of students.

    Each graded student contributes their period mean. Students without
    grades in the period only count towards ``total``.
    """
    means = [
        value for value in (period_mean(s.grades, period) for s in students)
        if value is not None
    ]
    if not means:
        return PeriodStats(total=len(students))

    passing = sum(1 for value in means if value >= PASSING_GRADE)
    return PeriodStats(
        average=rounded(mean(means), means),
        highest=rounded(max(means)),
        lowest=rounded(min(means)),
        passing=passing,
        failing=len(means) - passing,
        graded=len(means),
        total=len(students),
    )


def students_at_risk(students: Iterable[StudentGrades], limit: Optional[int] = None) -> List[StudentAverage]:
    at_risk = [s for s in student_averages(students) if s.tier == RiskTier.AT_RISK]
    if limit is not None:
        return at_risk[:limit]
    return at_risk


def count_by_tier(students: Iterable[StudentGrades]) -> Dict[RiskTier, int]:
    counts = {tier: 0 for tier in RiskTier}
    for entry in student_averages(students):
        counts[entry.tier] += 1
    return counts


def course_average(students: Iterable[StudentGrades]) -> Optional[float]:
    """Mean of the students' overall averages, skipping students without grades."""
    means = [entry.mean for entry in student_averages(students)]
    return rounded(mean(means), means)


def general_average(students: Iterable[StudentGrades]) -> Optional[float]:
    return course_average(students)


def _student_sort_key(entry: StudentAverage) -> Tuple:
    return (-entry.mean, entry.student.last_name.lower(), entry.student.first_name.lower(), str(entry.student.id))


def rank_students(students: Iterable[StudentGrades], limit: Optional[int] = 5) -> List[StudentAverage]:
    """Best averages first; equal averages ordered by last name, first name, then id."""
    ranked = sorted(student_averages(students), key=_student_sort_key)
    if limit is not None:
        return ranked[:limit]
    return ranked


def rank_courses(
    courses: Iterable[CourseInfo],
    students: Sequence[StudentGrades],
    limit: Optional[int] = 6,
) -> List[CourseAverage]:
    """Courses by descending mean of their students' averages; courses without grades are left out."""
    ranked = []
    for course in courses:
        members = [s for s in students if s.course_id == course.id]
        graded = student_averages(members)
        if not graded:
            continue
        means = [entry.mean for entry in graded]
        value = mean(means)
        ranked.append(CourseAverage(
            course=course,
            mean=value,
            average=rounded(value, means),
            students=len(members),
            graded_students=len(graded),
        ))

    ranked.sort(key=lambda c: (-c.mean, c.course.name.lower(), str(c.course.id)))
    if limit is not None:
        return ranked[:limit]
    return ranked
