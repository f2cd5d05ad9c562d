"""Table registry API routes."""
from __future__ import annotations

from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from typing import Any

from yonk_sql_architect.web.dependencies import get_workspace, raise_for_result
from yonk_sql_architect.workspace import Workspace

router = APIRouter()


class ImportRequest(BaseModel):
    sql: str
    tags: list[str] | str | None = None


class UpdateTagsRequest(BaseModel):
    tags: list[str] = Field(default_factory=list)


@router.get("/tables")
async def list_tables(
    search: str = Query("", description="Filter by table name or tag"),
    workspace: Workspace = Depends(get_workspace),
) -> dict[str, Any]:
    """List imported tables in registry order."""
    tables = workspace.list_tables(search)
    return {
        "tables": [t.model_dump() for t in tables],
        "total": len(workspace.registry),
        "tagging": workspace.tagger.in_progress,
    }


@router.get("/tables/{table_id}")
async def get_table(table_id: str, workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    table = workspace.registry.get(table_id)
    if table is None:
        raise HTTPException(status_code=404, detail=f"Table not found: {table_id}")
    return table.model_dump()


@router.post("/tables/import", status_code=201)
async def import_tables(
    body: ImportRequest,
    workspace: Workspace = Depends(get_workspace),
) -> dict[str, Any]:
    """Import CREATE TABLE statements from pasted SQL."""
    result = await workspace.import_sql(body.sql, body.tags)
    raise_for_result(result)
    return {"tables": [t.model_dump() for t in result.value], "message": result.message}


@router.post("/tables/upload", status_code=201)
async def upload_tables(
    request: Request,
    tags: str = Query("", description="Tags separated by commas or spaces"),
    workspace: Workspace = Depends(get_workspace),
) -> dict[str, Any]:
    """Import a SQL dump sent as the raw request body."""
    raw = await request.body()
    result = await workspace.import_sql(raw.decode("utf-8", errors="replace"), tags)
    raise_for_result(result)
    return {"tables": [t.model_dump() for t in result.value], "message": result.message}


@router.put("/tables/{table_id}/tags")
async def update_table_tags(
    table_id: str,
    body: UpdateTagsRequest,
    workspace: Workspace = Depends(get_workspace),
) -> dict[str, Any]:
    """Replace a table's tags."""
    if not await workspace.update_table_tags(table_id, body.tags):
        raise HTTPException(status_code=404, detail=f"Table not found: {table_id}")
    return workspace.registry.get(table_id).model_dump()


@router.delete("/tables/{table_id}")
async def remove_table(table_id: str, workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    if not await workspace.remove_table(table_id):
        raise HTTPException(status_code=404, detail=f"Table not found: {table_id}")
    return {"removed": table_id}


@router.delete("/tables")
async def clear_tables(workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    removed = len(workspace.registry)
    await workspace.clear_tables()
    return {"removed": removed}


@router.post("/tables/autotag")
async def autotag_tables(workspace: Workspace = Depends(get_workspace)) -> dict[str, Any]:
    """Suggest tags for every table. A run already in progress yields 409."""
    result = await workspace.auto_tag()
    if result.value is None:
        raise_for_result(result)
    return {
        "report": asdict(result.value),
        "error": result.error.value if result.error else None,
        "message": result.message,
    }
