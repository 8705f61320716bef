from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ProjectStatus(str, Enum):
    NEW = "Nový"
    SCHEDULED = "Naplánovaný"
    IN_PROGRESS = "Prebieha"
    PAUSED = "Pozastavený"
    COMPLETED = "Ukončený"
    CANCELLED = "Zrušený"


class ProjectType(str, Enum):
    SURVEY = "Obhliadka"
    INSTALLATION = "Montáž"
    REVISION = "Revízia"
    CLEANING = "Čistenie"


ACTIVE_STATUSES = frozenset({ProjectStatus.SCHEDULED, ProjectStatus.IN_PROGRESS, ProjectStatus.PAUSED})
TERMINAL_STATUSES = frozenset({ProjectStatus.COMPLETED, ProjectStatus.CANCELLED})


class _Row(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Project(_Row):
    id: str
    client_id: str
    type: str
    status: ProjectStatus = Field(default=ProjectStatus.NEW, alias="state")
    scheduled_date: date | None = None
    start_date: date | None = None
    completion_date: date | None = None
    note: str | None = None
    locked_by: str | None = None
    locked_by_name: str | None = None
    locked_at: datetime | None = None
    lock_expires_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_row(self) -> dict:
        """Serialise using the backend column names."""

        return self.model_dump(mode="json", by_alias=True)


class Client(_Row):
    id: str
    name: str
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    street_number: str | None = Field(default=None, alias="streetNumber")
    city: str | None = None
    country: str | None = None
    type: str | None = None
    note: str | None = None


class UserProfile(_Row):
    id: str
    name: str
    email: str | None = None


class Chimney(_Row):
    id: str
    chimney_type_id: str | None = None
    type: str | None = None
    labelling: str | None = None
    placement: str | None = None
    appliance: str | None = None
    note: str | None = None


class ServiceObject(_Row):
    id: str
    client_id: str | None = None
    address: str | None = None
    street_number: str | None = Field(default=None, alias="streetNumber")
    city: str | None = None
    country: str | None = None
    chimneys: tuple[Chimney, ...] = ()


class ProjectWithRelations(_Row):
    """A project joined with the rows the screens display next to it."""

    project: Project
    client: Client
    users: tuple[UserProfile, ...] = ()
    objects: tuple[ServiceObject, ...] = ()

    @property
    def id(self) -> str:
        return self.project.id

    def with_project(self, project: Project) -> "ProjectWithRelations":
        return self.model_copy(update={"project": project})

    def with_fields(self, **fields: object) -> "ProjectWithRelations":
        """Return a copy whose project carries ``fields`` (python field names)."""

        return self.with_project(self.project.model_copy(update=fields))
