import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import HTMLResponse
from sqlalchemy.orm import Session

from aula.crud.gradebook import GradebookRepository
from aula.crud.lookups import get_course_or_404
from aula.database import get_db
from aula.models.all_models import User
from aula.schemas.reports import ReportsSummary
from aula.services.reports import (
    build_excel, build_pdf, build_reports_summary, export_filename, export_rows, filter_students,
    render_print_html,
)
from aula.utils.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["Reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def load_students(db: Session, user: User, course_id: Optional[UUID]):
    """Students of the report scope and the scope's course name."""
    course_name = None
    if course_id:
        course_name = get_course_or_404(db, course_id, user.id).name
    students = GradebookRepository(db, user.id).fetch_students(course_id)
    return filter_students(students, course_id), course_name


def attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("/summary", response_model=ReportsSummary)
async def get_reports_summary(
    course_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    if course_id:
        get_course_or_404(db, course_id, current_user.id)
    snapshot = GradebookRepository(db, current_user.id).snapshot()
    return build_reports_summary(snapshot, course_id)


@router.get("/export/excel")
async def export_excel(
    course_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    students, course_name = load_students(db, current_user, course_id)
    content = build_excel(export_rows(students))
    filename = export_filename(course_name, "xlsx")
    logger.info(f"{current_user.email} exported {filename}")
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=attachment(filename))


@router.get("/export/print", response_class=HTMLResponse)
async def export_print(
    course_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Print-ready HTML grade report; the browser opens its print dialog on load
    """
    students, course_name = load_students(db, current_user, course_id)
    return HTMLResponse(render_print_html(students, course_name, auto_print=True))


@router.get("/export/pdf")
async def export_pdf(
    course_id: Optional[UUID] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    students, course_name = load_students(db, current_user, course_id)
    try:
        content = build_pdf(render_print_html(students, course_name))
    except OSError as e:
        # WeasyPrint needs the system Pango/Cairo libraries
        logger.error(f"PDF rendering unavailable: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="PDF export is not available on this server"
        )
    filename = export_filename(course_name, "pdf")
    logger.info(f"{current_user.email} exported {filename}")
    return Response(content=content, media_type="application/pdf", headers=attachment(filename))
