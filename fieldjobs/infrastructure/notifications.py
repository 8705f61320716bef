"""Short user-facing messages raised by the services.

Screens poll :meth:`NotificationCenter.active` and render what is there; a
message disappears once its duration has elapsed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal, Protocol
from uuid import uuid4

from fieldjobs.core.clock import Clock

NotificationKind = Literal["success", "error", "info", "warning"]


class Notifier(Protocol):
    """Contract for anything that can show a message to the user."""

    def notify(
        self,
        message: str,
        kind: NotificationKind = "info",
        *,
        screen: str = "projects",
        duration: float = 3.0,
    ) -> None:
        """Queue ``message`` for display on ``screen``."""


@dataclass(slots=True)
class Notification:
    id: str
    message: str
    kind: NotificationKind
    screen: str
    created_at: datetime
    duration: float = 3.0

    def expired(self, now: datetime) -> bool:
        if self.duration <= 0:
            return False
        return now >= self.created_at + timedelta(seconds=self.duration)

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "message": self.message,
            "type": self.kind,
            "screen": self.screen,
            "duration": self.duration,
        }


class NotificationCenter:
    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._items: list[Notification] = []

    def notify(
        self,
        message: str,
        kind: NotificationKind = "info",
        *,
        screen: str = "projects",
        duration: float = 3.0,
    ) -> None:
        self._prune()
        self._items.append(
            Notification(
                id=uuid4().hex,
                message=message,
                kind=kind,
                screen=screen,
                created_at=self._clock.now(),
                duration=duration,
            )
        )

    def _prune(self) -> None:
        now = self._clock.now()
        self._items = [item for item in self._items if not item.expired(now)]

    def active(self, screen: str | None = None) -> list[Notification]:
        self._prune()
        return [item for item in self._items if screen is None or item.screen == screen]

    def messages(self, kind: NotificationKind | None = None) -> list[str]:
        """Every message still held, including expired ones not yet pruned."""

        return [item.message for item in self._items if kind is None or item.kind == kind]

    def remove(self, notification_id: str) -> None:
        self._items = [item for item in self._items if item.id != notification_id]

    def clear(self) -> None:
        self._items.clear()
