"""Tag library API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Any

from yonk_sql_architect.web.dependencies import get_workspace
from yonk_sql_architect.workspace import Workspace

router = APIRouter()


class AddTagRequest(BaseModel):
    tag: str


class ReplaceTagsRequest(BaseModel):
    tags: list[str]


@router.get("/tags")
async def list_tags(workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    return {"tags": workspace.tag_library.tags}


@router.post("/tags", status_code=201)
async def add_tag(body: AddTagRequest, workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    added = await workspace.add_tag(body.tag)
    return {"added": added, "tags": workspace.tag_library.tags}


@router.put("/tags")
async def replace_tags(body: ReplaceTagsRequest, workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    await workspace.replace_tags(body.tags)
    return {"tags": workspace.tag_library.tags}


@router.delete("/tags/{tag}")
async def remove_tag(tag: str, workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    if not await workspace.remove_tag(tag):
        raise HTTPException(status_code=404, detail=f"Tag not found: {tag}")
    return {"tags": workspace.tag_library.tags}
