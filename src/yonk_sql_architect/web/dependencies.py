"""Shared helpers for API routes."""
from __future__ import annotations

from fastapi import HTTPException, Request

from yonk_sql_architect.results import ErrorKind, Result
from yonk_sql_architect.workspace import Workspace

ERROR_STATUS = {
    ErrorKind.PARSE_YIELDED_NOTHING: 422,
    ErrorKind.READ_FAILED: 400,
    ErrorKind.NO_TABLES: 400,
    ErrorKind.TAGGING_IN_PROGRESS: 409,
    ErrorKind.ORACLE_BATCH_FAILURE: 502,
    ErrorKind.ORACLE_UNAVAILABLE: 502,
    ErrorKind.SNAPSHOT_CORRUPT: 500,
}


def get_workspace(request: Request) -> Workspace:
    """Workspace created by the app lifespan."""
    return request.app.state.workspace


def raise_for_result(result: Result) -> None:
    """Turn a failed Result into an HTTP error carrying its error kind."""
    if result.ok:
        return
    raise HTTPException(
        status_code=ERROR_STATUS.get(result.error, 400),
        detail={"error": result.error.value, "message": result.message},
    )
