"""
graphpress.api_host - FastAPI server exposing GraphPress messaging over REST.

Usage:
    from graphpress.api_host import create_app

    app = create_app()
    # Run with uvicorn: uvicorn graphpress.api_host.server:get_app --factory
"""

from .server import create_app
from .config import AppConfig

__all__ = ["create_app", "AppConfig"]
