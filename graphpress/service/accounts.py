"""
AccountService - signup and credential checks for user nodes.

Session handling itself (binding/clearing the session cookie) is done by the
HTTP layer; login() only verifies credentials and returns the node ID to bind.
"""

import hashlib
import logging
import secrets
from typing import Any, Dict, Optional

from graphpress.core import (
    GraphStorage, DuplicateUsernameError, NodeNotFoundError,
    USERNAME_PATTERN, is_valid_id,
)

from .errors import ErrorCode, failure

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
PBKDF2_ITERATIONS = 200_000


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Hash a password as pbkdf2_sha256$<iterations>$<salt>$<hex digest>."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"pbkdf2_sha256${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    """Check a password against a hash produced by hash_password()."""
    try:
        algorithm, iterations, salt, expected = encoded.split("$")
        iterations = int(iterations)
    except ValueError:
        return False
    if algorithm != "pbkdf2_sha256":
        return False

    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return secrets.compare_digest(digest.hex(), expected)


class AccountService:
    """User signup, login verification and identity lookup."""

    def __init__(self, storage: GraphStorage, pbkdf2_iterations: int = PBKDF2_ITERATIONS):
        self._storage = storage
        self._iterations = pbkdf2_iterations

    def signup(self, username: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """Create a user node. Does not log the user in."""
        if not username or not password:
            return failure(ErrorCode.MISSING_FIELDS, "Username and password are required.")
        if not USERNAME_PATTERN.fullmatch(username):
            return failure(
                ErrorCode.INVALID_USERNAME,
                "Username may contain letters, digits, '_', '.' and '-' (max 64 characters)."
            )
        if len(password) < MIN_PASSWORD_LENGTH:
            return failure(
                ErrorCode.WEAK_PASSWORD,
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
            )

        try:
            user = self._storage.add_user(username, hash_password(password, self._iterations))
        except DuplicateUsernameError:
            return failure(ErrorCode.USERNAME_TAKEN, "Username is already taken.")

        logger.info(f"SIGNUP: {user.username} ({user.id})")
        return {
            "success": True,
            "id": user.id,
        }

    def login(self, username: Optional[str], password: Optional[str]) -> Dict[str, Any]:
        """Verify credentials. On success the result carries the node ID to bind to the session."""
        if not username or not password:
            return failure(ErrorCode.MISSING_FIELDS, "Username and password are required.")

        user = self._storage.find_user_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"LOGIN: rejected credentials for '{username}'")
            return failure(ErrorCode.INVALID_CREDENTIALS, "Invalid username or password.")

        logger.info(f"LOGIN: {user.username} ({user.id})")
        return {
            "success": True,
            "id": user.id,
        }

    def whoami(self, session_id: Optional[str]) -> Dict[str, Any]:
        """Identity of the session's user."""
        if not session_id or not is_valid_id(session_id):
            return failure(ErrorCode.NO_SESSION, "Session required.")
        try:
            me = self._storage.node(session_id)
        except NodeNotFoundError:
            return failure(ErrorCode.NO_SESSION, "Session required.")

        return {
            "success": True,
            "id": me.id,
            "username": me.username,
        }
