"""
SQLAlchemy ORM models for the credential store.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class EmployeeIntegration(Base):
    """
    One row per ``(employee_id, provider)``.

    Each provider's credentials live in their own row, so a Google write can
    never touch Zoom's tokens for the same employee.
    """

    __tablename__ = "employee_integrations"
    __table_args__ = (
        UniqueConstraint("employee_id", "provider", name="uq_employee_integrations_employee_provider"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(128), nullable=False, index=True)
    provider = Column(String(16), nullable=False)
    access_token = Column(Text)
    refresh_token = Column(Text)
    expiry = Column(DateTime(timezone=True))
    provider_account_email = Column(String(320))
    provider_account_id = Column(String(256))
    scopes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
