"""
app/repositories/run_lease_repository.py

DB access for run leases.

Writes are single conditional statements so that two sessions racing for
the same lease cannot both win: an expired lease is taken over by an
UPDATE guarded on its expiry, a missing one by a plain INSERT that the
primary key rejects for the loser.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, insert, update
from sqlalchemy.orm import Session

from db.models.run_lease import RunLease


class RunLeaseRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, lease_id: str) -> RunLease | None:
        return self._session.get(RunLease, lease_id, populate_existing=True)

    def take_over_expired(self, lease_id: str, *, now: datetime, holder: str, expires_at: datetime) -> bool:
        """
        Re-assign the lease only if it has expired. True when a row changed.
        """

        stmt = (
            update(RunLease)
            .where(RunLease.id == lease_id, RunLease.expires_at <= now)
            .values(holder=holder, acquired_at=now, expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount == 1

    def insert(self, lease: RunLease) -> None:
        """
        Raises ``IntegrityError`` when a lease with the same id exists.
        """

        self._session.execute(
            insert(RunLease).values(
                id=lease.id,
                stage=lease.stage,
                site_url=lease.site_url,
                holder=lease.holder,
                acquired_at=lease.acquired_at,
                expires_at=lease.expires_at,
            )
        )

    def delete_if_held(self, lease_id: str, holder: str) -> bool:
        stmt = (
            delete(RunLease)
            .where(RunLease.id == lease_id, RunLease.holder == holder)
            .execution_options(synchronize_session=False)
        )
        return self._session.execute(stmt).rowcount == 1
