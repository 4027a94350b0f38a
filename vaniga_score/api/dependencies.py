"""Dependency injection for FastAPI endpoints"""

import secrets
import uuid
from typing import Optional
from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from vaniga_score.config import settings
from vaniga_score.infrastructure.database.session import get_db
from vaniga_score.services.coordinator import MutationCoordinator
from vaniga_score.services.queries import LedgerQueries


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_business_id(x_business_id: Optional[str] = Header(None)) -> uuid.UUID:
    """
    Caller identity, already authenticated upstream.

    Authentication itself lives outside this service; all it consumes is
    the opaque business id forwarded in X-Business-ID.
    """
    if not x_business_id:
        raise HTTPException(status_code=401, detail="Missing X-Business-ID header")
    try:
        return uuid.UUID(x_business_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid business ID format")


def require_admin(x_admin_token: Optional[str] = Header(None)) -> None:
    """
    Guard for operator-only routes.

    The caller must present the configured ADMIN_TOKEN in X-Admin-Token.
    With no token configured the routes refuse every caller.
    """
    if not x_admin_token:
        raise HTTPException(status_code=401, detail="Missing X-Admin-Token header")
    if not settings.admin_token or not secrets.compare_digest(x_admin_token, settings.admin_token):
        raise HTTPException(status_code=403, detail="Admin access denied")


def get_coordinator(db: Session = Depends(get_db)) -> MutationCoordinator:
    """Provide a coordinator bound to the request's session"""
    return MutationCoordinator(db)


def get_queries(db: Session = Depends(get_db)) -> LedgerQueries:
    """Provide read-only ledger queries bound to the request's session"""
    return LedgerQueries(db)
