"""
App Host Server - FastAPI application exposing GraphPress messaging.

This module provides create_app() which builds a FastAPI application that:
- Exposes MessagingService and AccountService via REST API endpoints
- Binds the logged in user to a signed session cookie
- Maps graph store failures to failure envelopes
- Serves health and info endpoints

Usage:
    from graphpress.api_host import create_app

    # Default configuration
    app = create_app()

    # Custom configuration
    from graphpress.api_host.config import AppConfig
    config = AppConfig(graph_file="custom_graph.json")
    app = create_app(config)
"""

import logging
from typing import Optional, Dict, Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request

from graphpress import __version__
from graphpress.core import (
    GraphStorage, StorageError,
)
from graphpress.service import (
    MessagingService, AccountService, ErrorCode, ERROR_STATUS, failure, create_rest_router,
)

from .config import AppConfig

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[AppConfig] = None,
    graph_storage: Optional[GraphStorage] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Optional configuration object. If None, uses defaults from environment.
        graph_storage: Optional pre-configured GraphStorage instance.
                      If None, creates one based on config.

    Returns:
        Configured FastAPI application.
    """
    if config is None:
        config = AppConfig.from_env()

    app = FastAPI(
        title="GraphPress Messaging",
        description="Direct messages between users stored as edges of a graph",
        version=__version__,
    )

    app.add_middleware(
        SessionMiddleware,
        secret_key=config.session_secret,
        session_cookie=config.session_cookie,
        max_age=config.session_max_age,
        same_site="lax",
        https_only=config.session_https_only,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if graph_storage is None:
        graph_path = config.get_graph_path()
        graph_storage = GraphStorage(str(graph_path))

    messaging_service = MessagingService(graph_storage, preview_length=config.inbox_preview_length)
    account_service = AccountService(graph_storage)

    app.state.graph_storage = graph_storage
    app.state.messaging_service = messaging_service
    app.state.account_service = account_service
    app.state.config = config

    rest_router = create_rest_router(messaging_service, account_service)
    app.include_router(rest_router, prefix=config.api_prefix)

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error(f"Store unavailable during {request.url.path}: {exc}")
        return JSONResponse(
            status_code=ERROR_STATUS[ErrorCode.STORE_UNAVAILABLE],
            content=failure(ErrorCode.STORE_UNAVAILABLE, "The message store is unavailable."),
        )

    @app.get("/health")
    async def health_check() -> Dict[str, Any]:
        """Health check endpoint."""
        stats = graph_storage.get_stats()
        return {
            "status": "healthy",
            "graph_nodes": stats.total_users,
            "graph_edges": stats.total_messages,
        }

    @app.get("/")
    async def root() -> RedirectResponse:
        """Redirect root to API info."""
        return RedirectResponse(url="/info", status_code=302)

    @app.get("/info")
    async def info() -> Dict[str, Any]:
        """API information endpoint."""
        prefix = config.api_prefix
        return {
            "name": "GraphPress Messaging",
            "version": __version__,
            "endpoints": {
                "message": f"{prefix}/message",
                "fetchUnreadMessageCount": f"{prefix}/fetchUnreadMessageCount",
                "fetchInbox": f"{prefix}/fetchInbox",
                "fetchMessage": f"{prefix}/fetchMessage",
                "signup": f"{prefix}/signup",
                "login": f"{prefix}/login",
                "logout": f"{prefix}/logout",
                "whoami": f"{prefix}/whoami",
                "health": "/health",
            },
        }

    logger.info(f"GraphPress app created (graph: {graph_storage.json_path}, api prefix: {config.api_prefix})")
    return app


def get_app() -> FastAPI:
    """
    Factory function for uvicorn.

    Usage:
        uvicorn graphpress.api_host.server:get_app --factory
    """
    return create_app()
