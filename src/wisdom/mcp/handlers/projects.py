# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Project tools. Projects live only on the gateway and are not signed."""

from __future__ import annotations

from typing import Any

from ...core.exceptions import PreconditionError
from ...core.payloads import new_uuid
from ...gateway.types import Project
from ..context import ServerContext
from ..requests import (
    ClearProjectRequest,
    CreateProjectRequest,
    OptionalUUIDRequest,
    PageRequest,
    SetProjectRequest,
    UpdateProjectRequest,
)
from ._common import page_result

NO_PROJECT_HINT = "No current project set. Use wisdom_set_project or wisdom_create_project."


def project_set(ctx: ServerContext, req: SetProjectRequest) -> dict[str, Any]:
    """Make an existing project current; the gateway lookup confirms it exists."""
    project = ctx.gateway.get_project(req.project)
    path = ctx.update_config({"current_project": project.uuid}, persist=req.persist)
    return {
        "success": True,
        "message": f"Current project set to: {project.name}",
        "project": {"uuid": project.uuid, "name": project.name},
        "persisted": req.persist,
        "saved_to": str(path) if path else None,
    }


def project_get(ctx: ServerContext, req: OptionalUUIDRequest) -> dict[str, Any]:
    current = ctx.current_project()
    uuid = req.uuid or current
    if not uuid:
        return {"success": True, "current_project": None, "message": NO_PROJECT_HINT}

    project = ctx.gateway.get_project(uuid)
    return {"success": True, "project": project.to_dict(), "is_current": project.uuid == current}


def project_create(ctx: ServerContext, req: CreateProjectRequest) -> dict[str, Any]:
    owner = ctx.require_agent()
    project = Project(
        uuid=new_uuid(),
        name=req.name,
        owner=owner,
        description=req.description,
        default_tags=req.default_tags or [],
        default_transform=req.default_transform,
        visibility=req.visibility,
    )
    created = ctx.gateway.create_project(project.to_dict())
    if req.set_as_current:
        ctx.update_config({"current_project": created.uuid}, persist=True)
    else:
        ctx.state.add_recent_project(created.uuid)
    return {"success": True, "project": created.to_dict(), "is_current": req.set_as_current}


def project_list(ctx: ServerContext, req: PageRequest) -> dict[str, Any]:
    """Projects owned by the configured agent."""
    owner = ctx.require_agent()
    page = ctx.gateway.list_projects(owner=owner, limit=req.limit, offset=req.offset)
    current = ctx.current_project()
    result = page_result(
        "projects",
        page,
        lambda p: {
            "uuid": p.uuid,
            "name": p.name,
            "visibility": p.visibility.value,
            "is_current": p.uuid == current,
            "created_at": p.created_at,
        },
    )
    result["current_project"] = current
    return result


def project_update(ctx: ServerContext, req: UpdateProjectRequest) -> dict[str, Any]:
    uuid = req.uuid or ctx.current_project()
    if not uuid:
        raise PreconditionError("No project specified and no current project set.", remedy="wisdom_set_project")

    given = req.model_fields_set
    updates: dict[str, Any] = {}
    if req.name:
        updates["name"] = req.name
    if req.description is not None:
        updates["description"] = req.description
    if req.default_tags is not None:
        updates["default_tags"] = req.default_tags
    if "default_transform" in given:
        updates["default_transform"] = req.default_transform or None
    if req.visibility is not None:
        updates["visibility"] = req.visibility.value

    project = ctx.gateway.update_project(uuid, updates)
    return {"success": True, "updated": sorted(updates), "project": project.to_dict()}


def project_clear(ctx: ServerContext, req: ClearProjectRequest) -> dict[str, Any]:
    path = ctx.update_config({"current_project": None}, persist=req.persist)
    return {
        "success": True,
        "message": "Current project cleared",
        "persisted": req.persist,
        "saved_to": str(path) if path else None,
    }
