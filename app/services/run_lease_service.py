"""
app/services/run_lease_service.py

Per (stage, site) run leases that keep overlapping trigger calls from running
the same stage twice.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.document_ids import run_lease_id
from app.repositories.run_lease_repository import RunLeaseRepository
from db.models.run_lease import RunLease

logger = logging.getLogger(__name__)


class RunInProgressError(RuntimeError):
    """
    Raised when another run of the same stage for the same site holds an
    unexpired lease.
    """

    def __init__(self, *, stage: str, site_url: str, expires_at: datetime) -> None:
        super().__init__(
            f"Stage '{stage}' is already running for site {site_url} "
            f"(lease expires {expires_at.isoformat()})."
        )
        self.stage = stage
        self.site_url = site_url
        self.expires_at = expires_at


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class RunLeaseService:
    def __init__(self, *, ttl_seconds: int = 3600) -> None:
        self._ttl = timedelta(seconds=max(1, ttl_seconds))

    def acquire(
        self,
        *,
        db: Session,
        stage: str,
        site_url: str,
        now: datetime | None = None,
    ) -> RunLease:
        """
        Take the lease for (stage, site), replacing an expired one.

        Raises ``RunInProgressError`` while another holder's lease is
        unexpired, including when a concurrent caller wins the same row.
        """

        now = now or datetime.now(timezone.utc)
        repository = RunLeaseRepository(db)
        lease = RunLease(
            id=run_lease_id(stage, site_url),
            stage=stage,
            site_url=site_url,
            holder=uuid.uuid4().hex,
            acquired_at=now,
            expires_at=now + self._ttl,
        )

        try:
            taken = repository.take_over_expired(lease.id, now=now, holder=lease.holder, expires_at=lease.expires_at)
            if not taken:
                repository.insert(lease)
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = repository.get(lease.id)
            expires_at = _as_utc(existing.expires_at) if existing is not None else lease.expires_at
            raise RunInProgressError(stage=stage, site_url=site_url, expires_at=expires_at) from None
        except SQLAlchemyError:
            db.rollback()
            raise

        logger.debug("Run lease acquired id=%s holder=%s", lease.id, lease.holder)
        return lease

    def release(self, *, db: Session, lease: RunLease) -> None:
        """
        Drop the lease if it is still ours. A failed release is logged and
        the lease lapses at its expiry.
        """

        try:
            RunLeaseRepository(db).delete_if_held(lease.id, lease.holder)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Run lease release failed id=%s error=%s", lease.id, exc)

    @contextmanager
    def hold(self, *, db: Session, stage: str, site_url: str) -> Iterator[RunLease]:
        lease = self.acquire(db=db, stage=stage, site_url=site_url)
        try:
            yield lease
        finally:
            db.rollback()
            self.release(db=db, lease=lease)
