"""
Liveness and storage checks.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.db import get_session
from app.errors import UnavailableError
from app.services.realtime import connection_registry

VERSION = "1.0.0"

# tables whose row counts /health/db reports
COUNTED_TABLES = ("users", "posts", "comments", "likes", "follows", "notifications", "hashtags")


class ComponentStatus(BaseModel):
    status: str = Field(..., description="ok or down")
    error: Optional[str] = None


class RealtimeStatus(BaseModel):
    status: str
    connections: int = Field(..., description="Live notification sessions in this process")


class HealthReport(BaseModel):
    status: str
    db: ComponentStatus
    realtime: RealtimeStatus
    version: str
    timestamp: datetime


class DatabaseReport(ComponentStatus):
    tables: Dict[str, int] = Field(default_factory=dict)
    timestamp: datetime


router = APIRouter(prefix="/health", tags=["health"])


def check_database_health() -> Dict[str, str]:
    """Run ``SELECT 1``; returns ``{"status": ...}`` plus ``error`` when down."""
    try:
        with get_session() as db:
            if db.execute(text("SELECT 1")).scalar() != 1:
                return {"status": "down", "error": "Unexpected health check result"}
    except UnavailableError as e:
        return {"status": "down", "error": f"Database unavailable: {e.details or e.message}"}
    except SQLAlchemyError as e:
        return {"status": "down", "error": f"Database error: {e}"}
    return {"status": "ok"}


def check_realtime_health() -> Dict[str, Any]:
    return {"status": "ok", "connections": connection_registry.connection_count()}


@router.get("/", response_model=HealthReport)
def health_check() -> HealthReport:
    """Overall status is driven by the database; the push channel is informational."""
    db_health = check_database_health()
    return HealthReport(
        status=db_health["status"],
        db=ComponentStatus(**db_health),
        realtime=RealtimeStatus(**check_realtime_health()),
        version=VERSION,
        timestamp=datetime.utcnow(),
    )


@router.get("/db", response_model=DatabaseReport)
def database_health() -> DatabaseReport:
    """Database check plus row counts of the main tables."""
    report = DatabaseReport(**check_database_health(), timestamp=datetime.utcnow())
    if report.status != "ok":
        return report
    try:
        with get_session() as db:
            report.tables = {
                table: db.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar() for table in COUNTED_TABLES
            }
    except (SQLAlchemyError, UnavailableError) as e:
        report.error = f"Table counts failed: {e}"
    return report
