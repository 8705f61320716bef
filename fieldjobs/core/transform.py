from __future__ import annotations

from typing import Any, Iterable

from fieldjobs.core.schema import (
    Chimney,
    Client,
    Project,
    ProjectWithRelations,
    ServiceObject,
    UserProfile,
)

# PostgREST embedding used by every project query
PROJECT_SELECT = (
    "*,"
    "clients(*),"
    "project_assignments(user_profiles(id,name,email)),"
    "project_objects(objects(id,client_id,address,city,streetNumber,country,"
    "chimneys(id,chimney_type_id,placement,appliance,note,"
    "chimney_type:chimney_types(id,type,labelling))))"
)


def _transform_chimney(row: dict[str, Any]) -> Chimney:
    chimney_type = row.get("chimney_type") or row.get("chimney_types") or {}
    return Chimney(
        id=str(row["id"]),
        chimney_type_id=row.get("chimney_type_id") or chimney_type.get("id"),
        type=chimney_type.get("type"),
        labelling=chimney_type.get("labelling"),
        placement=row.get("placement"),
        appliance=row.get("appliance"),
        note=row.get("note"),
    )


def _transform_object(row: dict[str, Any]) -> ServiceObject:
    chimneys = tuple(_transform_chimney(item) for item in row.get("chimneys") or [] if item)
    payload = {key: value for key, value in row.items() if key != "chimneys"}
    return ServiceObject.model_validate({**payload, "chimneys": chimneys})


def transform_project_row(row: dict[str, Any]) -> ProjectWithRelations:
    users = tuple(
        UserProfile.model_validate(assignment["user_profiles"])
        for assignment in row.get("project_assignments") or []
        if assignment and assignment.get("user_profiles")
    )
    objects = tuple(
        _transform_object(link["objects"])
        for link in row.get("project_objects") or []
        if link and link.get("objects")
    )
    return ProjectWithRelations(
        project=Project.model_validate(row),
        client=Client.model_validate(row["clients"]),
        users=users,
        objects=objects,
    )


def transform_project_rows(rows: Iterable[dict[str, Any]]) -> list[ProjectWithRelations]:
    """Turn joined project rows into snapshots, dropping rows without a client."""

    return [transform_project_row(row) for row in rows if row and row.get("id") and row.get("clients")]
