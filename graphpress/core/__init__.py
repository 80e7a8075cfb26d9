"""
graphpress.core - Graph storage layer for GraphPress messaging

This package provides the user/message graph, its JSON persistence and the
node/edge handles the messaging service consumes. It has no dependencies on
HTTP, sessions or configuration.

Usage:
    from graphpress.core import GraphStorage

    storage = GraphStorage("path/to/graph.json")
    alice = storage.node(storage.add_user("alice").id)
    bob = storage.node(storage.add_user("bob").id)
    msg = alice.message(bob, "hello")
    msg.set_is_read(True)
"""

from .storage import (
    GraphStorage,
    NodeHandle,
    EdgeHandle,
    GraphStoreError,
    NodeNotFoundError,
    EdgeNotFoundError,
    DuplicateUsernameError,
    StorageError,
)

from .models import (
    ID_PATTERN,
    USERNAME_PATTERN,
    generate_id,
    is_valid_id,
    normalize_id,
    User,
    Message,
    GraphStats,
)

__all__ = [
    # Storage
    "GraphStorage",
    "NodeHandle",
    "EdgeHandle",

    # Errors
    "GraphStoreError",
    "NodeNotFoundError",
    "EdgeNotFoundError",
    "DuplicateUsernameError",
    "StorageError",

    # Models
    "ID_PATTERN",
    "USERNAME_PATTERN",
    "generate_id",
    "is_valid_id",
    "normalize_id",
    "User",
    "Message",
    "GraphStats",
]

__version__ = "1.0.0"
