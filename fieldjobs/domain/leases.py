"""Domain values describing edit leases on project rows."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from fieldjobs.core.schema import Project


@dataclass(frozen=True, slots=True)
class LockOutcome:
    """Raw answer of the backend's atomic lock-if-free procedure."""

    locked: bool
    lock_expires_at: datetime | None = None
    locked_by_name: str | None = None


@dataclass(frozen=True, slots=True)
class LeaseGranted:
    expires_at: datetime | None

    granted = True


@dataclass(frozen=True, slots=True)
class LeaseDenied:
    """Someone else holds the lease, or the backend could not confirm one."""

    holder_name: str | None = None

    granted = False


LeaseResult = Union[LeaseGranted, LeaseDenied]


def lease_is_active(project: Project, now: datetime) -> bool:
    """A lease counts only while it has a holder and has not expired."""

    if not project.locked_by or project.lock_expires_at is None:
        return False
    return project.lock_expires_at > now


def lease_holder(project: Project, now: datetime) -> str | None:
    return project.locked_by if lease_is_active(project, now) else None
