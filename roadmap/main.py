from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from roadmap.db.base import get_db
from roadmap.core.config import settings
from roadmap.core.logging import get_logger, setup_logging
from roadmap.routers import analytics as analytics_router
from roadmap.schemas.common import HealthResponse
from roadmap.core.errors import (
    AnalyticsError,
    analytics_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
logger = get_logger(__name__)

app = FastAPI(
    title="Road Map Analytics API",
    description=(
        "**Goal-tracking analytics for the Road Map platform**\n\n"
        "Read-only reports over student goals and attendance: completion "
        "trends, throughput, backlog, overdue rates and time-to-complete.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(AnalyticsError, analytics_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(analytics_router.router)


@app.get("/health", tags=["health"], summary="Health check", response_model=HealthResponse)
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Health check could not reach the database: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": "unreachable"},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
