"""Domain entities for the planning screen."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from fieldjobs.core.schema import ProjectStatus


@dataclass(slots=True)
class PendingAssignments:
    """Projects dragged onto calendar days but not yet written to the backend.

    Owned by one planning session; drained by ``SchedulingService.flush``.
    """

    session_id: str = ""
    _entries: dict[str, date] = field(default_factory=dict, init=False, repr=False)

    def record(self, project_id: str, day: date) -> None:
        self._entries[project_id] = day

    def discard(self, project_id: str) -> date | None:
        return self._entries.pop(project_id, None)

    def get(self, project_id: str) -> date | None:
        return self._entries.get(project_id)

    def snapshot(self) -> dict[str, date]:
        return dict(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, project_id: object) -> bool:
        return project_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(slots=True)
class FlushReport:
    updated: dict[str, ProjectStatus] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.skipped

    def as_dict(self) -> dict[str, object]:
        return {
            "updated": {project_id: status.value for project_id, status in self.updated.items()},
            "failed": dict(self.failed),
            "skipped": list(self.skipped),
        }
