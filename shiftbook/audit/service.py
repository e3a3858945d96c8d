"""Audit log service."""

from fastapi import Request
from sqlalchemy.orm import Session

from .models import AuditLog


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def audit(db: Session, request: Request, action: str, detail: str = "", user_id: str | None = None) -> None:
    """Write an audit log entry. Committed together with the caller's unit of work."""
    db.add(
        AuditLog(
            user_id=user_id,
            action=action,
            detail=detail,
            ip_address=client_ip(request),
        )
    )
