"""Infrastructure layer exports."""

from .backend import InMemoryProjectBackend, ProjectBackend
from .notifications import Notification, NotificationCenter, Notifier
from .supabase import SupabaseProjectBackend

__all__ = [
    "InMemoryProjectBackend",
    "Notification",
    "NotificationCenter",
    "Notifier",
    "ProjectBackend",
    "SupabaseProjectBackend",
]
