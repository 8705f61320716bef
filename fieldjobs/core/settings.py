from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta

from fieldjobs.core.schema import ProjectType


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def _origins_env() -> list[str]:
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    return origins or ["http://localhost:8081", "http://127.0.0.1:8081"]


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_timeout: float = 10.0
    lease_ttl_seconds: float = 300.0
    lease_renew_seconds: float = 120.0
    cache_ttl_seconds: float = 300.0
    planning_horizon_days: int = 30
    successor_type: str = ProjectType.CLEANING.value
    log_level: str = "INFO"
    log_file: str | None = None
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:8081", "http://127.0.0.1:8081"])

    @property
    def supabase_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    @property
    def lease_ttl(self) -> timedelta:
        return timedelta(seconds=self.lease_ttl_seconds)

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(seconds=self.cache_ttl_seconds)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            supabase_url=(os.getenv("FIELDJOBS_SUPABASE_URL") or "").strip().rstrip("/"),
            supabase_key=(os.getenv("FIELDJOBS_SUPABASE_KEY") or "").strip(),
            supabase_timeout=_float_env("FIELDJOBS_SUPABASE_TIMEOUT", 10.0),
            lease_ttl_seconds=_float_env("FIELDJOBS_LEASE_TTL_SECONDS", 300.0),
            lease_renew_seconds=_float_env("FIELDJOBS_LEASE_RENEW_SECONDS", 120.0),
            cache_ttl_seconds=_float_env("FIELDJOBS_CACHE_TTL_SECONDS", 300.0),
            planning_horizon_days=int(_float_env("FIELDJOBS_PLANNING_HORIZON_DAYS", 30)),
            successor_type=os.getenv("FIELDJOBS_SUCCESSOR_TYPE") or ProjectType.CLEANING.value,
            log_level=(os.getenv("FIELDJOBS_LOG_LEVEL") or "INFO").upper(),
            log_file=os.getenv("FIELDJOBS_LOG_FILE") or None,
            cors_origins=_origins_env(),
        )
