"""Edit leases: one holder at a time may edit a project."""
from __future__ import annotations

import logging
from datetime import timedelta

from fieldjobs.application.cache import ProjectCache
from fieldjobs.core.clock import Clock
from fieldjobs.core.errors import BackendError
from fieldjobs.domain import LeaseDenied, LeaseGranted, LeaseResult
from fieldjobs.infrastructure import Notifier, ProjectBackend

logger = logging.getLogger(__name__)

RENEW_FAILED_MESSAGE = "Nepodarilo sa predĺžiť zámok projektu"


class LeaseManager:
    """Acquires, renews and releases leases through the backend's atomic procedures.

    The manager never decides ownership on its own; it only relays what the
    backend answered and mirrors the lease columns into the cache.
    """

    def __init__(
        self,
        backend: ProjectBackend,
        clock: Clock,
        notifier: Notifier,
        *,
        lease_ttl: timedelta = timedelta(minutes=5),
        cache: ProjectCache | None = None,
    ) -> None:
        self._backend = backend
        self._clock = clock
        self._notifier = notifier
        self._lease_ttl = lease_ttl
        self._cache = cache

    @property
    def lease_ttl(self) -> timedelta:
        return self._lease_ttl

    async def acquire(self, record_id: str, holder_id: str, holder_name: str) -> LeaseResult:
        try:
            outcome = await self._backend.lock_record(record_id, holder_id, holder_name)
        except BackendError as exc:
            logger.error("Locking project %s for %s failed: %s", record_id, holder_id, exc)
            return LeaseDenied(None)

        if not outcome.locked:
            logger.info("Project %s is locked by %s", record_id, outcome.locked_by_name or "unknown")
            return LeaseDenied(outcome.locked_by_name)

        if self._cache is not None:
            self._cache.apply_lock_fields(
                record_id,
                locked_by=holder_id,
                locked_by_name=holder_name,
                locked_at=self._clock.now(),
                lock_expires_at=outcome.lock_expires_at,
            )
        logger.debug("Project %s locked by %s until %s", record_id, holder_id, outcome.lock_expires_at)
        return LeaseGranted(outcome.lock_expires_at)

    async def renew(self, record_id: str, holder_id: str) -> bool:
        new_expiry = self._clock.now() + self._lease_ttl
        try:
            renewed = await self._backend.renew_lock(record_id, holder_id, new_expiry)
        except BackendError as exc:
            logger.warning("Renewing lock on project %s failed: %s", record_id, exc)
            renewed = False
        else:
            if not renewed:
                logger.warning("Lock on project %s is no longer held by %s", record_id, holder_id)

        if not renewed:
            self._notifier.notify(RENEW_FAILED_MESSAGE, "warning")
            return False

        if self._cache is not None:
            self._cache.apply_lock_fields(record_id, lock_expires_at=new_expiry)
        return True

    async def release(self, record_id: str, holder_id: str) -> None:
        try:
            await self._backend.unlock_record(record_id, holder_id)
        except BackendError as exc:
            # the lease expires on its own
            logger.warning("Unlocking project %s failed: %s", record_id, exc)
            return

        if self._cache is None:
            return
        current = self._cache.get(record_id)
        if current is not None and current.project.locked_by == holder_id:
            self._cache.apply_lock_fields(
                record_id,
                locked_by=None,
                locked_by_name=None,
                locked_at=None,
                lock_expires_at=None,
            )


__all__ = ["LeaseManager"]
