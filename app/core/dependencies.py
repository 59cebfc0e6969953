# app/core/dependencies.py
"""Shared FastAPI dependencies."""

from dataclasses import dataclass
from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.reporting.errors import AuthorizationError

# Core database dependency
SessionDep = Annotated[Session, Depends(get_db)]


@dataclass(frozen=True)
class SessionContext:
    """Authenticated caller context set by the upstream gateway."""

    organization_id: str


def get_session_context(x_organization_id: Optional[str] = Header(default=None)) -> SessionContext:
    """Read the authenticated organization from the ``X-Organization-Id`` header."""
    if x_organization_id is None or not x_organization_id.strip():
        raise AuthorizationError("Missing authenticated organization")
    return SessionContext(organization_id=x_organization_id.strip())


SessionContextDep = Annotated[SessionContext, Depends(get_session_context)]


def get_report_engine_service(db: SessionDep):
    """Get report engine service bound to the request's database session"""
    from app.reporting.service import ReportEngineService

    return ReportEngineService.from_session(db)
