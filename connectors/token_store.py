"""
Credential store — durable per-(employee, provider) OAuth records.

Writes go through the database's native ``INSERT … ON CONFLICT DO UPDATE``
so concurrent upserts on the same key never interleave into a corrupt row
and never produce a duplicate.  Only the columns present in the patch are
updated; everything else on an existing row is left alone.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from connectors.encryption import TokenCipher
from connectors.errors import StoreError
from connectors.models import EmployeeIntegration
from connectors.schemas import ConnectionSummary, IntegrationPatch, IntegrationRecord, Provider
from database.session import build_session_factory

logger = logging.getLogger(__name__)

_TOKEN_FIELDS = ("access_token", "refresh_token")

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class CredentialStore:
    """Get / upsert ``IntegrationRecord`` by ``(employee_id, provider)``."""

    def __init__(self, engine: AsyncEngine, cipher: TokenCipher) -> None:
        dialect = engine.dialect.name
        if dialect not in _INSERTS:
            raise ValueError(f"Credential store needs an upsert-capable database, got {dialect!r}")
        self._insert = _INSERTS[dialect]
        self._session_factory = build_session_factory(engine)
        self._cipher = cipher

    def _to_record(self, row: EmployeeIntegration) -> IntegrationRecord:
        return IntegrationRecord(
            employee_id=row.employee_id,
            provider=Provider(row.provider),
            access_token=self._cipher.decrypt(row.access_token),
            refresh_token=self._cipher.decrypt(row.refresh_token),
            expiry=_as_utc(row.expiry),
            provider_account_email=row.provider_account_email,
            provider_account_id=row.provider_account_id,
            scopes=row.scopes,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    async def get(self, employee_id: str, provider: Provider | str) -> Optional[IntegrationRecord]:
        provider = Provider(provider)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(EmployeeIntegration).where(
                        EmployeeIntegration.employee_id == employee_id,
                        EmployeeIntegration.provider == provider.value,
                    )
                )
                row = result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("Credential lookup failed for %s/%s: %s", provider.value, employee_id, exc)
            raise StoreError(employee_id, provider.value, str(exc), action="load") from exc
        return self._to_record(row) if row is not None else None

    async def upsert(
        self,
        employee_id: str,
        provider: Provider | str,
        patch: IntegrationPatch,
    ) -> IntegrationRecord:
        """
        Insert or partially update the record for ``(employee_id, provider)``.

        ``updated_at`` is always refreshed.  Returns the row as stored.
        """
        provider = Provider(provider)
        now = datetime.now(timezone.utc)

        changes = patch.changes()
        if changes.get("expiry") is not None:
            changes["expiry"] = _as_utc(changes["expiry"]).astimezone(timezone.utc)
        for field in _TOKEN_FIELDS:
            if changes.get(field) is not None:
                changes[field] = self._cipher.encrypt(changes[field])
        changes["updated_at"] = now

        stmt = self._insert(EmployeeIntegration).values(
            [{"employee_id": employee_id, "provider": provider.value, "created_at": now, **changes}]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["employee_id", "provider"],
            set_={name: stmt.excluded[name] for name in changes},
        ).returning(EmployeeIntegration)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        stmt, execution_options={"populate_existing": True}
                    )
                    row = result.scalar_one()
        except SQLAlchemyError as exc:
            logger.error("Credential upsert failed for %s/%s: %s", provider.value, employee_id, exc)
            raise StoreError(employee_id, provider.value, str(exc)) from exc

        logger.info(
            "Stored %s credentials for employee %s (fields: %s)",
            provider.value,
            employee_id,
            ", ".join(sorted(k for k in changes if k != "updated_at")) or "none",
        )
        return self._to_record(row)

    async def list_for_employee(self, employee_id: str) -> List[ConnectionSummary]:
        """Return every provider record for an employee, without tokens."""
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(EmployeeIntegration)
                    .where(EmployeeIntegration.employee_id == employee_id)
                    .order_by(EmployeeIntegration.provider)
                )
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise StoreError(employee_id, "*", str(exc), action="list") from exc

        return [
            ConnectionSummary(
                provider=Provider(r.provider),
                connected=bool(r.refresh_token),
                provider_account_email=r.provider_account_email,
                expiry=_as_utc(r.expiry),
                scopes=(r.scopes or "").split(),
                updated_at=_as_utc(r.updated_at),
            )
            for r in rows
        ]
