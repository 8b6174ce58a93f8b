import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import RedirectResponse

from aula.config import settings
from aula.database import engine
from aula.middleware import add_cors_middleware, add_error_handlers
from aula.models.all_models import Base
from aula.routes import (auth, courses, students, grades,
                         diary, observations, planning, agenda,
                         settings as settings_routes, dashboard, reports)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")
    yield

app = FastAPI(title="Aula",
              description="Academic management for teachers: courses, students, grades, diary, planning and reports",
              version="1.0.0",
              lifespan=lifespan)
add_cors_middleware(app)
add_error_handlers(app)


@app.get("/", include_in_schema=False)
async def root():
    """
    Root endpoint that redirects to the API documentation
    """
    return RedirectResponse(url="/docs")

app.include_router(auth.router)
app.include_router(courses.router)
app.include_router(students.router)
app.include_router(grades.router)
app.include_router(diary.router)
app.include_router(observations.router)
app.include_router(planning.router)
app.include_router(agenda.router)
app.include_router(settings_routes.router)
app.include_router(dashboard.router)
app.include_router(reports.router)
