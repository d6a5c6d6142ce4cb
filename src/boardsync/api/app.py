"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from boardsync.api.dependencies import (
    SessionNotFoundError,
    SessionRegistry,
    close_event_manager,
    close_registry,
    init_event_manager,
    init_registry,
)
from boardsync.api.models import APIResponse
from boardsync.api.routes import board, events
from boardsync.board.exceptions import (
    AmbiguousFieldError,
    BoardNotLoadedError,
    ProjectNotFoundError,
    UnresolvedColumnError,
    UnresolvedIssueError,
)
from boardsync.config import BoardSyncConfig, load_config
from boardsync.logging import setup_logging
from boardsync.upstream.client import GraphQLClient
from boardsync.upstream.exceptions import UpstreamError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from boardsync.upstream.client import Transport

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse[None](data=None, error=message).model_dump(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    config: BoardSyncConfig = app.state.config or load_config()
    setup_logging(
        log_dir=config.logging.log_dir,
        level=config.logging.level,
        console=config.logging.console,
    )

    transport: Transport | None = app.state.transport
    owned_client: GraphQLClient | None = None
    if transport is None:
        if not config.upstream.token:
            logger.warning("No GitHub token configured; upstream calls will be rejected")
        owned_client = GraphQLClient(
            token=config.upstream.token,
            base_url=config.upstream.graphql_url,
            timeout=config.upstream.timeout,
        )
        transport = owned_client

    event_manager = init_event_manager()
    init_registry(SessionRegistry(transport, config.board, event_manager))

    yield
    # Shutdown
    await close_registry()
    close_event_manager()
    if owned_client is not None:
        await owned_client.aclose()


def create_app(
    config: BoardSyncConfig | None = None, transport: Transport | None = None
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Configuration; loaded from BOARDSYNC_CONFIG at startup when omitted.
        transport: Upstream transport; a GraphQLClient is built from config when omitted.
    """
    app = FastAPI(
        title="boardsync API",
        description="REST API for boardsync - optimistic GitHub Projects boards",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.config = config
    app.state.transport = transport

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(SessionNotFoundError)
    async def session_not_found_handler(
        _request: Request, _exc: SessionNotFoundError
    ) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "Board not loaded")

    @app.exception_handler(BoardNotLoadedError)
    async def board_not_loaded_handler(
        _request: Request, _exc: BoardNotLoadedError
    ) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "Board not loaded")

    @app.exception_handler(ProjectNotFoundError)
    async def project_not_found_handler(
        _request: Request, _exc: ProjectNotFoundError
    ) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, "Project not found")

    @app.exception_handler(UnresolvedColumnError)
    async def unresolved_column_handler(
        _request: Request, exc: UnresolvedColumnError
    ) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(UnresolvedIssueError)
    async def unresolved_issue_handler(
        _request: Request, exc: UnresolvedIssueError
    ) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(AmbiguousFieldError)
    async def ambiguous_field_handler(
        _request: Request, exc: AmbiguousFieldError
    ) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, str(exc))

    @app.exception_handler(UpstreamError)
    async def upstream_error_handler(_request: Request, exc: UpstreamError) -> JSONResponse:
        logger.warning("Upstream request failed: %s", exc)
        return _error(status.HTTP_502_BAD_GATEWAY, "Upstream request failed")

    @app.exception_handler(ValueError)
    async def invalid_intent_handler(_request: Request, exc: ValueError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    # Include routers
    app.include_router(board.router, prefix="/api/v1")
    app.include_router(events.router, prefix="/api/v1")

    return app


# Default app instance
app = create_app()
