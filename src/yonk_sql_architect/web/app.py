"""FastAPI application exposing the SQL Architect workspace."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from yonk_sql_architect import __version__
from yonk_sql_architect.config import ArchitectConfig, load_config
from yonk_sql_architect.workspace import Workspace, open_workspace

# Import routes
from yonk_sql_architect.web.routes import queries, tables, tags

logger = logging.getLogger(__name__)


def create_app(config: ArchitectConfig | None = None, workspace: Workspace | None = None) -> FastAPI:
    """Build the API app.

    Args:
        config: Configuration used to open the workspace on startup
            (loaded from the environment when omitted)
        workspace: Pre-built workspace, used instead of opening one
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup/shutdown events."""
        logger.info("SQL Architect API starting up...")
        if app.state.workspace is None:
            app.state.workspace = await open_workspace(config or load_config())
        for warning in app.state.workspace.load_warnings:
            logger.warning(warning.message)
        yield
        logger.info("SQL Architect API shutting down...")

    app = FastAPI(
        title="SQL Architect",
        description="Schema registry, table tagging and SQL generation",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.workspace = workspace

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure this in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(tables.router, prefix="/api", tags=["tables"])
    app.include_router(tags.router, prefix="/api", tags=["tags"])
    app.include_router(queries.router, prefix="/api/queries", tags=["queries"])

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "version": __version__}

    return app


app = create_app()


def serve(config: ArchitectConfig | None = None, host: str = "127.0.0.1", port: int = 8080) -> None:
    """Run the web server using uvicorn."""
    import uvicorn
    uvicorn.run(create_app(config), host=host, port=port)
