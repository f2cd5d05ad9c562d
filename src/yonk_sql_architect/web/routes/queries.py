"""SQL generation and saved query API routes."""
from __future__ import annotations

from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Any

from yonk_sql_architect.web.dependencies import get_workspace, raise_for_result
from yonk_sql_architect.workspace import Workspace

router = APIRouter()


class GenerateRequest(BaseModel):
    requirement: str


class SaveQueryRequest(BaseModel):
    code: str
    name: str | None = None


class UpdateQueryRequest(BaseModel):
    name: str | None = None
    code: str | None = None


@router.post("/generate")
async def generate(body: GenerateRequest, workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    """Generate SQL for a natural-language requirement over all imported tables."""
    result = await workspace.generate_sql(body.requirement)
    raise_for_result(result)
    return asdict(result.value)


@router.get("/saved")
async def list_saved(workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    return {"queries": [q.model_dump() for q in workspace.saved_queries.list_queries()]}


@router.post("/saved", status_code=201)
async def save_query(body: SaveQueryRequest, workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    query = await workspace.save_query(body.code, body.name)
    return query.model_dump()


@router.patch("/saved/{query_id}")
async def update_query(
    query_id: str,
    body: UpdateQueryRequest,
    workspace: Workspace = Depends(get_workspace),
) -> dict[str, Any]:
    if workspace.saved_queries.get(query_id) is None:
        raise HTTPException(status_code=404, detail=f"Saved query not found: {query_id}")
    if body.name is not None:
        await workspace.rename_query(query_id, body.name)
    if body.code is not None:
        await workspace.update_query_code(query_id, body.code)
    return workspace.saved_queries.get(query_id).model_dump()


@router.delete("/saved/{query_id}")
async def delete_query(query_id: str, workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    if not await workspace.delete_query(query_id):
        raise HTTPException(status_code=404, detail=f"Saved query not found: {query_id}")
    return {"deleted": query_id}


@router.delete("/saved")
async def clear_saved(workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    await workspace.clear_queries()
    return {"queries": []}
