"""Domain layer definitions."""

from .leases import LeaseDenied, LeaseGranted, LeaseResult, LockOutcome, lease_holder, lease_is_active
from .planning import FlushReport, PendingAssignments

__all__ = [
    "FlushReport",
    "LeaseDenied",
    "LeaseGranted",
    "LeaseResult",
    "LockOutcome",
    "PendingAssignments",
    "lease_holder",
    "lease_is_active",
]
