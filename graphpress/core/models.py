"""
Data models for the GraphPress messaging graph.

Users are nodes and messages are directed edges between them. Both share the
same ID scheme: 32 hexadecimal characters (a uuid4 without dashes).

This module is part of the core graph storage layer and has no HTTP or
session dependencies.
"""

import re
import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, validator


ID_PATTERN = re.compile(r"^[0-9a-fA-F]{32}$")

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


def generate_id() -> str:
    """Generate a new lowercase 32-hex-character ID."""
    return uuid.uuid4().hex


def is_valid_id(value: Optional[str]) -> bool:
    """Check whether a value is a well-formed node/edge ID."""
    if not isinstance(value, str):
        return False
    return ID_PATTERN.fullmatch(value) is not None


def normalize_id(value: str) -> str:
    """IDs are stored lowercase; lookups accept either case."""
    return value.lower()


class User(BaseModel):
    """A user node in the graph"""
    id: str = Field(default_factory=generate_id)
    username: str = Field(..., min_length=1, max_length=64)
    password_hash: str = ""
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @validator('id')
    def validate_id(cls, v):
        if not is_valid_id(v):
            raise ValueError(f"Invalid node ID: {v}")
        return normalize_id(v)

    @validator('username')
    def validate_username(cls, v):
        if not USERNAME_PATTERN.fullmatch(v):
            raise ValueError(f"Invalid username: {v}")
        return v

    def to_dict(self) -> dict:
        """Convert to dict for JSON storage"""
        data = self.model_dump()
        data['created_at'] = self.created_at.isoformat()
        return data

    def to_public_dict(self) -> dict:
        """Dict safe to return to clients (no password hash)."""
        data = self.to_dict()
        data.pop('password_hash', None)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'User':
        """Create from dict (JSON)"""
        if isinstance(data.get('created_at'), str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        return cls(**data)


class Message(BaseModel):
    """A message edge from sender (source) to recipient (target)"""
    id: str = Field(default_factory=generate_id)
    source: str  # sender node ID (tail)
    target: str  # recipient node ID (head)
    content: str
    is_read: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @validator('id', 'source', 'target')
    def validate_ids(cls, v):
        if not is_valid_id(v):
            raise ValueError(f"Invalid ID: {v}")
        return normalize_id(v)

    def attributes(self) -> Dict[str, Any]:
        """Edge attributes, excluding identity and endpoints."""
        return {
            'content': self.content,
            'is_read': self.is_read,
            'created_at': self.created_at.isoformat(),
        }

    def to_dict(self) -> dict:
        data = self.model_dump()
        data['created_at'] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Message':
        if isinstance(data.get('created_at'), str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        return cls(**data)


class GraphStats(BaseModel):
    """Statistics for the graph"""
    total_users: int
    total_messages: int
    unread_messages: int
    last_updated: datetime
