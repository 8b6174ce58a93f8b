import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aula.crud.gradebook import GradebookRepository
from aula.database import get_db
from aula.models.all_models import User
from aula.schemas.reports import DashboardSummary
from aula.services.reports import build_dashboard_summary
from aula.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Student and course totals, general average, students at risk, top
    courses and the latest diary entries and observations
    """
    repository = GradebookRepository(db, current_user.id)
    summary = build_dashboard_summary(
        repository.snapshot(),
        repository.fetch_recent_activity(),
    )
    logger.debug(f"Dashboard for {current_user.email}: {summary.total_students} students, {summary.at_risk_count} at risk")
    return summary
