"""Keep an edit lease alive while a project is open for editing."""
from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Protocol
from uuid import uuid4

from fieldjobs.domain import LeaseResult

if TYPE_CHECKING:
    from fieldjobs.application.leases import LeaseManager

logger = logging.getLogger(__name__)

Callback = Callable[[], Awaitable[None]]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_every(self, interval_seconds: float, callback: Callback) -> TimerHandle:
        """Run ``callback`` every ``interval_seconds`` until the handle is cancelled."""


class _TaskHandle:
    def __init__(self, task: asyncio.Task) -> None:
        self._task = task

    def cancel(self) -> None:
        self._task.cancel()


class AsyncioScheduler:
    def call_every(self, interval_seconds: float, callback: Callback) -> TimerHandle:
        async def _loop() -> None:
            while True:
                await asyncio.sleep(interval_seconds)
                try:
                    await callback()
                except Exception:  # pragma: no cover - keep the timer alive
                    logger.exception("Periodic callback failed")

        return _TaskHandle(asyncio.get_running_loop().create_task(_loop()))


class LeaseSession:
    """One editing session on one project.

    ``start`` takes the lease and schedules renewals; ``stop`` cancels the
    renewal timer before it releases, so no renewal can follow the release.
    """

    def __init__(
        self,
        manager: LeaseManager,
        record_id: str,
        holder_id: str,
        holder_name: str,
        scheduler: Scheduler,
        *,
        interval_seconds: float = 120.0,
        session_id: str | None = None,
    ) -> None:
        self._manager = manager
        self.session_id = session_id or uuid4().hex
        self.record_id = record_id
        self.holder_id = holder_id
        self.holder_name = holder_name
        self._scheduler = scheduler
        self._interval = interval_seconds
        self._timer: TimerHandle | None = None
        self._started = False
        self._stopped = False
        self.held = False
        self.renew_failures = 0
        self.result: LeaseResult | None = None

    async def start(self) -> LeaseResult:
        if self._started:
            raise RuntimeError(f"lease session for {self.record_id} already started")
        self._started = True

        self.result = await self._manager.acquire(self.record_id, self.holder_id, self.holder_name)
        if not self.result.granted:
            return self.result
        if self._stopped:
            # stopped while acquiring
            await self._manager.release(self.record_id, self.holder_id)
            return self.result
        self.held = True
        self._timer = self._scheduler.call_every(self._interval, self._renew)
        return self.result

    async def _renew(self) -> None:
        if not self.held:
            return
        if not await self._manager.renew(self.record_id, self.holder_id):
            self.renew_failures += 1

    async def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self.held:
            self.held = False
            await self._manager.release(self.record_id, self.holder_id)

    async def __aenter__(self) -> "LeaseSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()


__all__ = ["AsyncioScheduler", "LeaseSession", "Scheduler", "TimerHandle"]
