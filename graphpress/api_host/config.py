"""
Configuration for the App Host server.

Provides sensible defaults that can be overridden via environment variables
or by passing a custom AppConfig to create_app().
"""

import os
import secrets
from dataclasses import dataclass, field
from pathlib import Path
from typing import List


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class AppConfig:
    """Configuration for the app host server."""

    # Graph storage configuration
    graph_file: str = field(default_factory=lambda: os.getenv("GRAPH_FILE", "graph.json"))

    # Server configuration
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))

    # API configuration
    api_prefix: str = field(default_factory=lambda: os.getenv("API_PREFIX", "/api"))
    inbox_preview_length: int = field(default_factory=lambda: int(os.getenv("INBOX_PREVIEW_LENGTH", "70")))
    cors_origins: List[str] = field(default_factory=lambda: _split_csv(os.getenv("CORS_ORIGINS", "*")))

    # Session configuration
    # Without SESSION_SECRET, sessions do not survive a restart
    session_secret: str = field(default_factory=lambda: os.getenv("SESSION_SECRET") or secrets.token_hex(32))
    session_cookie: str = field(default_factory=lambda: os.getenv("SESSION_COOKIE", "graphpress_session"))
    session_max_age: int = field(default_factory=lambda: int(os.getenv("SESSION_MAX_AGE", str(14 * 24 * 3600))))
    session_https_only: bool = field(default_factory=lambda: os.getenv("SESSION_HTTPS_ONLY", "false").lower() == "true")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    def get_graph_path(self) -> Path:
        """Get resolved path to graph file."""
        graph_path = Path(self.graph_file)
        if not graph_path.is_absolute():
            # Resolve relative to the package directory
            package_dir = Path(__file__).parent.parent
            graph_path = package_dir / self.graph_file
        return graph_path
