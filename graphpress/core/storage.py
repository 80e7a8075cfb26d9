"""
Graph storage with NetworkX and JSON persistence

Users are stored as nodes and messages as keyed edges of a MultiDiGraph
(sender -> recipient, keyed by message ID). The whole graph is persisted to
a single JSON file after every mutation.

Concurrency Safety:
- Uses threading.RLock for in-memory data structure protection
- Uses file locking (fcntl on Unix, msvcrt on Windows) for file access
- Implements atomic writes via temp file + rename

Callers that only need the messaging view of the graph go through
NodeHandle / EdgeHandle, obtained from GraphStorage.node() and
GraphStorage.edge().
"""

import json
import logging
import os
import sys
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import networkx as nx

from .models import User, Message, GraphStats, normalize_id

logger = logging.getLogger(__name__)


# Cross-platform file locking
if sys.platform == 'win32':
    import msvcrt

    def _lock_file(f, exclusive=True):
        """Acquire file lock on Windows."""
        # msvcrt has no shared mode; readers take the same blocking lock
        msvcrt.locking(f.fileno(), msvcrt.LK_LOCK if exclusive else msvcrt.LK_RLCK, 1)

    def _unlock_file(f):
        """Release file lock on Windows."""
        msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)
else:
    import fcntl

    def _lock_file(f, exclusive=True):
        """Acquire file lock on Unix."""
        fcntl.flock(f, fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH)

    def _unlock_file(f):
        """Release file lock on Unix."""
        fcntl.flock(f, fcntl.LOCK_UN)


class GraphStoreError(Exception):
    """Base class for graph store failures."""


class NodeNotFoundError(GraphStoreError):
    """Raised when a node ID does not resolve to a user."""

    def __init__(self, node_id: str):
        super().__init__(f"Node {node_id} not found")
        self.node_id = node_id


class EdgeNotFoundError(GraphStoreError):
    """Raised when an edge ID does not resolve to a message."""

    def __init__(self, edge_id: str):
        super().__init__(f"Edge {edge_id} not found")
        self.edge_id = edge_id


class DuplicateUsernameError(GraphStoreError):
    """Raised when signing up with a username that already exists."""

    def __init__(self, username: str):
        super().__init__(f"Username {username} is already taken")
        self.username = username


class StorageError(GraphStoreError):
    """Raised when the graph cannot be read from or written to disk."""


class NodeHandle:
    """Messaging view of a user node."""

    def __init__(self, storage: "GraphStorage", user: User):
        self._storage = storage
        self._user = user

    @property
    def id(self) -> str:
        return self._user.id

    @property
    def username(self) -> str:
        return self._user.username

    def message(self, recipient: "NodeHandle", text: str) -> "EdgeHandle":
        """Send a message from this node to recipient."""
        msg = self._storage.add_message(self.id, recipient.id, text)
        return EdgeHandle(self._storage, msg)

    def get_incoming_messages(self) -> List["EdgeHandle"]:
        return [
            EdgeHandle(self._storage, msg)
            for msg in self._storage.get_incoming_messages(self.id)
        ]

    def get_sent_messages(self) -> List["EdgeHandle"]:
        return [
            EdgeHandle(self._storage, msg)
            for msg in self._storage.get_sent_messages(self.id)
        ]

    def has_incoming_message(self, message_id: str) -> bool:
        return self._storage.has_incoming_message(self.id, message_id)

    def has_sent_message(self, message_id: str) -> bool:
        return self._storage.has_sent_message(self.id, message_id)

    def __eq__(self, other) -> bool:
        return isinstance(other, NodeHandle) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __repr__(self) -> str:
        return f"NodeHandle(id={self.id!r}, username={self.username!r})"


class EdgeHandle:
    """Messaging view of a message edge."""

    def __init__(self, storage: "GraphStorage", msg: Message):
        self._storage = storage
        self._msg = msg

    @property
    def id(self) -> str:
        return self._msg.id

    @property
    def content(self) -> str:
        return self._msg.content

    @property
    def is_read(self) -> bool:
        return self._msg.is_read

    def tail(self) -> NodeHandle:
        """The sending node."""
        return self._storage.node(self._msg.source)

    def head(self) -> NodeHandle:
        """The receiving node."""
        return self._storage.node(self._msg.target)

    def attributes(self) -> Dict[str, Any]:
        return self._msg.attributes()

    def set_is_read(self, value: bool) -> None:
        self._msg = self._storage.set_message_read(self.id, value)

    def __repr__(self) -> str:
        return f"EdgeHandle(id={self.id!r}, from={self._msg.source!r}, to={self._msg.target!r})"


class GraphStorage:
    """
    Manages graph storage with NetworkX + JSON persistence.

    Thread-safety:
    - All public methods that modify state are protected by _lock (threading.RLock)
    - File operations use OS-level file locking for multi-process safety
    - Writes are atomic (temp file + rename) to prevent corruption
    """

    def __init__(self, json_path: str = "graph.json"):
        self.json_path = Path(json_path)

        # RLock: mutations call save() while already holding the lock
        self._lock = threading.RLock()

        self.graph = nx.MultiDiGraph()
        self.users: Dict[str, User] = {}  # node_id -> User
        self.messages: Dict[str, Message] = {}  # edge_id -> Message
        self._usernames: Dict[str, str] = {}  # lowercased username -> node_id
        self._seq = 0  # creation order of message edges

        self.load()

    # ==================== Persistence ====================

    def load(self) -> None:
        """
        Load graph from JSON file.

        Thread-safe: Uses lock for in-memory updates and file lock for reading.
        """
        with self._lock:
            if not self.json_path.exists():
                logger.info(f"No graph file found at {self.json_path}, creating new empty graph")
                self.save()
                return

            try:
                with open(self.json_path, 'r', encoding='utf-8') as f:
                    _lock_file(f, exclusive=False)
                    try:
                        data = json.load(f)
                    finally:
                        _unlock_file(f)
                users = [User.from_dict(d) for d in data.get('nodes', [])]
                messages = [Message.from_dict(d) for d in data.get('edges', [])]
            except (OSError, ValueError, TypeError, AttributeError) as e:
                logger.error(f"Error loading graph from {self.json_path}: {e}")
                raise StorageError(f"Could not load graph: {e}") from e

            # Every edge must connect two known users
            user_ids = {user.id for user in users}
            for msg in messages:
                if msg.source not in user_ids or msg.target not in user_ids:
                    logger.error(f"Message {msg.id} in {self.json_path} references an unknown user")
                    raise StorageError(f"Could not load graph: message {msg.id} references an unknown user")

            self.users.clear()
            self.messages.clear()
            self._usernames.clear()
            self.graph.clear()
            self._seq = 0

            for user in users:
                self._index_user(user)

            for msg in messages:
                self._index_message(msg)

            logger.info(f"Loaded {len(self.users)} users and {len(self.messages)} messages from {self.json_path}")

    def save(self) -> None:
        """
        Save graph to JSON file.

        Atomic: Writes to temp file first, then renames to prevent corruption.
        """
        with self._lock:
            data = {
                'nodes': [user.to_dict() for user in self.users.values()],
                'edges': [msg.to_dict() for msg in self._ordered_messages()],
                'metadata': {
                    'version': '1.0',
                    'last_updated': datetime.utcnow().isoformat(),
                },
            }

            try:
                self.json_path.parent.mkdir(parents=True, exist_ok=True)
                temp_fd, temp_path = tempfile.mkstemp(
                    suffix='.json',
                    prefix='graph_',
                    dir=self.json_path.parent
                )
            except OSError as e:
                logger.error(f"Cannot write graph to {self.json_path}: {e}")
                raise StorageError(f"Could not save graph: {e}") from e

            try:
                with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
                    _lock_file(f, exclusive=True)
                    try:
                        json.dump(data, f, indent=2, ensure_ascii=False)
                        f.flush()
                        os.fsync(f.fileno())
                    finally:
                        _unlock_file(f)

                os.replace(temp_path, self.json_path)
            except OSError as e:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                logger.error(f"Cannot write graph to {self.json_path}: {e}")
                raise StorageError(f"Could not save graph: {e}") from e

            logger.debug(f"Saved {len(self.users)} users and {len(self.messages)} messages to {self.json_path}")

    def reload(self) -> None:
        """Reload graph from disk, discarding any in-memory changes."""
        self.load()

    def _index_user(self, user: User) -> None:
        self.users[user.id] = user
        self._usernames[user.username.lower()] = user.id
        self.graph.add_node(user.id, data=user)

    def _index_message(self, msg: Message) -> None:
        self.messages[msg.id] = msg
        self.graph.add_edge(msg.source, msg.target, key=msg.id, data=msg, seq=self._seq)
        self._seq += 1

    def _ordered_messages(self) -> List[Message]:
        edges = self.graph.edges(keys=True, data=True)
        return [d['data'] for _, _, _, d in sorted(edges, key=lambda e: e[3]['seq'])]

    # ==================== Handles ====================

    def node(self, node_id: str) -> NodeHandle:
        """Look up a user node. Raises NodeNotFoundError."""
        user = self.get_user(node_id)
        if user is None:
            raise NodeNotFoundError(node_id)
        return NodeHandle(self, user)

    def edge(self, edge_id: str) -> EdgeHandle:
        """Look up a message edge. Raises EdgeNotFoundError."""
        msg = self.get_message(edge_id)
        if msg is None:
            raise EdgeNotFoundError(edge_id)
        return EdgeHandle(self, msg)

    # ==================== Users ====================

    def get_user(self, node_id: str) -> Optional[User]:
        if not isinstance(node_id, str):
            return None
        return self.users.get(normalize_id(node_id))

    def find_user_by_username(self, username: str) -> Optional[User]:
        node_id = self._usernames.get(username.lower())
        return self.users.get(node_id) if node_id else None

    def add_user(self, username: str, password_hash: str = "") -> User:
        """
        Create a user node.

        Usernames are unique case-insensitively.
        """
        with self._lock:
            if username.lower() in self._usernames:
                raise DuplicateUsernameError(username)

            user = User(username=username, password_hash=password_hash)
            self._index_user(user)
            try:
                self.save()
            except StorageError:
                del self.users[user.id]
                del self._usernames[username.lower()]
                self.graph.remove_node(user.id)
                raise

            logger.info(f"Created user {user.username} ({user.id})")
            return user

    # ==================== Messages ====================

    def get_message(self, edge_id: str) -> Optional[Message]:
        if not isinstance(edge_id, str):
            return None
        return self.messages.get(normalize_id(edge_id))

    def add_message(self, source: str, target: str, content: str) -> Message:
        """Create a message edge from source to target and persist it."""
        with self._lock:
            source = normalize_id(source)
            target = normalize_id(target)
            if source not in self.users:
                raise NodeNotFoundError(source)
            if target not in self.users:
                raise NodeNotFoundError(target)

            msg = Message(source=source, target=target, content=content)
            self._index_message(msg)
            try:
                self.save()
            except StorageError:
                self.graph.remove_edge(source, target, key=msg.id)
                del self.messages[msg.id]
                raise

            logger.info(f"Message {msg.id} sent from {source} to {target}")
            return msg

    def set_message_read(self, edge_id: str, value: bool = True) -> Message:
        """Set the read flag of a message and persist it."""
        with self._lock:
            msg = self.get_message(edge_id)
            if msg is None:
                raise EdgeNotFoundError(edge_id)
            if msg.is_read == value:
                return msg

            previous = msg.is_read
            msg.is_read = value
            try:
                self.save()
            except StorageError:
                msg.is_read = previous
                raise
            return msg

    def get_incoming_messages(self, node_id: str) -> List[Message]:
        """Messages addressed to node_id, in creation order."""
        node_id = normalize_id(node_id)
        if node_id not in self.graph:
            return []
        edges = self.graph.in_edges(node_id, keys=True, data=True)
        return [d['data'] for _, _, _, d in sorted(edges, key=lambda e: e[3]['seq'])]

    def get_sent_messages(self, node_id: str) -> List[Message]:
        """Messages sent by node_id, in creation order."""
        node_id = normalize_id(node_id)
        if node_id not in self.graph:
            return []
        edges = self.graph.out_edges(node_id, keys=True, data=True)
        return [d['data'] for _, _, _, d in sorted(edges, key=lambda e: e[3]['seq'])]

    def has_incoming_message(self, node_id: str, edge_id: str) -> bool:
        msg = self.get_message(edge_id)
        return msg is not None and msg.target == normalize_id(node_id)

    def has_sent_message(self, node_id: str, edge_id: str) -> bool:
        msg = self.get_message(edge_id)
        return msg is not None and msg.source == normalize_id(node_id)

    def get_stats(self) -> GraphStats:
        """Get statistics for the graph"""
        return GraphStats(
            total_users=len(self.users),
            total_messages=len(self.messages),
            unread_messages=sum(1 for m in self.messages.values() if not m.is_read),
            last_updated=datetime.utcnow()
        )
