"""Project persistence backed by Supabase (PostgREST over HTTP)."""
from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from fieldjobs.core.errors import BackendError
from fieldjobs.core.queries import ProjectQuery
from fieldjobs.core.schema import Project, ProjectWithRelations
from fieldjobs.core.settings import Settings
from fieldjobs.core.transform import PROJECT_SELECT, transform_project_rows
from fieldjobs.domain import LockOutcome

logger = logging.getLogger(__name__)

_optional_datetime = TypeAdapter(datetime | None)


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


class SupabaseProjectBackend:
    """Client for the project tables and lease procedures of a Supabase project."""

    LOCK_PROCEDURE = "lock_project_and_relations"
    UNLOCK_PROCEDURE = "unlock_project"
    TABLE = "projects"

    def __init__(
        self,
        url: str,
        api_key: str,
        *,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        base = url.strip().rstrip("/")
        if not base.startswith(("http://", "https://")):
            raise ValueError("url must include scheme and host")
        self._base_url = base
        self._api_key = api_key
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseProjectBackend":
        return cls(settings.supabase_url, settings.supabase_key, timeout=settings.supabase_timeout)

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _headers(self, prefer: str | None) -> dict[str, str]:
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        payload: Any | None = None,
        prefer: str | None = None,
    ) -> Any:
        url = f"{self._base_url}{path}"
        logger.debug("supabase %s %s", method, path)
        try:
            response = await self._client.request(
                method,
                url,
                params=params,
                json=_jsonable(payload) if payload is not None else None,
                headers=self._headers(prefer),
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = exc.response.text.strip()
            raise BackendError(
                f"Supabase request failed for {path}: {exc.response.status_code} {detail}".rstrip()
            ) from exc
        except httpx.HTTPError as exc:
            raise BackendError(f"Supabase request failed for {path}: {exc}") from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise BackendError(f"Supabase returned non-JSON payload for {path}") from exc

    async def _call_procedure(self, name: str, arguments: dict[str, Any]) -> Any:
        return await self._request("POST", f"/rest/v1/rpc/{name}", payload=arguments)

    @staticmethod
    def _first_row(data: Any) -> dict[str, Any]:
        if isinstance(data, list):
            return data[0] if data and isinstance(data[0], dict) else {}
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _project_from(data: Any, record_id: str) -> Project:
        row = SupabaseProjectBackend._first_row(data)
        if not row:
            raise BackendError(f"project {record_id} not found")
        try:
            return Project.model_validate(row)
        except ValidationError as exc:
            raise BackendError(f"unexpected project row for {record_id}: {exc}") from exc

    # ------------------------------------------------------------------
    # lease procedures
    # ------------------------------------------------------------------
    async def lock_record(self, record_id: str, holder_id: str, holder_name: str) -> LockOutcome:
        data = await self._call_procedure(
            self.LOCK_PROCEDURE,
            {"p_project_id": record_id, "p_user_id": holder_id, "p_user_name": holder_name},
        )
        row = self._first_row(data)
        try:
            expires_at = _optional_datetime.validate_python(row.get("lock_expires_at"))
        except ValidationError as exc:
            raise BackendError(f"unexpected lock expiry for {record_id}: {exc}") from exc
        return LockOutcome(
            locked=bool(row.get("locked")),
            lock_expires_at=expires_at,
            locked_by_name=row.get("locked_by_name"),
        )

    async def unlock_record(self, record_id: str, holder_id: str) -> None:
        await self._call_procedure(self.UNLOCK_PROCEDURE, {"p_project_id": record_id, "p_user_id": holder_id})

    async def renew_lock(self, record_id: str, holder_id: str, new_expiry: datetime) -> bool:
        rows = await self._request(
            "PATCH",
            f"/rest/v1/{self.TABLE}",
            params={"id": f"eq.{record_id}", "locked_by": f"eq.{holder_id}", "select": "id"},
            payload={"lock_expires_at": new_expiry},
            prefer="return=representation",
        )
        return bool(rows)

    # ------------------------------------------------------------------
    # row CRUD
    # ------------------------------------------------------------------
    async def update_record_status(self, record_id: str, fields: dict[str, Any]) -> Project:
        data = await self._request(
            "PATCH",
            f"/rest/v1/{self.TABLE}",
            params={"id": f"eq.{record_id}"},
            payload=fields,
            prefer="return=representation",
        )
        return self._project_from(data, record_id)

    async def create_record(self, fields: dict[str, Any]) -> Project:
        data = await self._request(
            "POST",
            f"/rest/v1/{self.TABLE}",
            payload=fields,
            prefer="return=representation",
        )
        return self._project_from(data, "<new>")

    async def delete_record(self, record_id: str) -> None:
        await self._request("DELETE", f"/rest/v1/{self.TABLE}", params={"id": f"eq.{record_id}"})

    async def fetch_projects(
        self,
        query: ProjectQuery,
        *,
        today: date,
        updated_since: datetime | None = None,
    ) -> list[ProjectWithRelations]:
        params = {"select": PROJECT_SELECT, **query.postgrest_params(today)}
        if updated_since is not None:
            params["updated_at"] = f"gt.{updated_since.isoformat()}"
        rows = await self._request("GET", f"/rest/v1/{self.TABLE}", params=params)
        try:
            return transform_project_rows(rows or [])
        except (KeyError, ValidationError) as exc:
            raise BackendError(f"unexpected rows for query {query.name}: {exc}") from exc

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


__all__ = ["SupabaseProjectBackend"]
