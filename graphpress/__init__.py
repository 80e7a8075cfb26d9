"""
GraphPress - direct messaging over a user graph.

This package is organized into:
- core: User/message graph, JSON persistence, node and edge handles
- service: Messaging and account operations and the REST router
- api_host: FastAPI application server

Usage:
    from graphpress.core import GraphStorage
    from graphpress.service import MessagingService, AccountService, create_rest_router
    from graphpress.api_host import create_app, AppConfig
"""

__version__ = "1.0.0"
