"""Application services."""

from .cache import CacheEntry, EntryState, ProjectCache
from .leases import LeaseManager
from .lifecycle import LifecycleService, StatusChange
from .scheduling import SchedulingService
from .services import Services, build_services, configure_services, get_services, reset_services

__all__ = [
    "CacheEntry",
    "EntryState",
    "LeaseManager",
    "LifecycleService",
    "ProjectCache",
    "SchedulingService",
    "Services",
    "StatusChange",
    "build_services",
    "configure_services",
    "get_services",
    "reset_services",
]
