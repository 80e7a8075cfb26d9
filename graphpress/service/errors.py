"""
Error codes returned in failure envelopes, and their HTTP status mapping.
"""

from enum import Enum
from typing import Any, Dict


class ErrorCode(str, Enum):
    """Machine-readable failure codes."""
    MISSING_FIELDS = "missing-fields"
    INVALID_RECIPIENT_ID = "invalid-recipient-id"
    EMPTY_MESSAGE = "empty-message"
    INVALID_MESSAGE_ID = "invalid-message-id"
    UNAUTHORIZED_MESSAGE_ACCESS = "unauthorized-message-access"
    NO_SESSION = "no-session"
    RECIPIENT_NOT_FOUND = "recipient-not-found"
    STORE_UNAVAILABLE = "store-unavailable"
    # Accounts
    INVALID_USERNAME = "invalid-username"
    WEAK_PASSWORD = "weak-password"
    USERNAME_TAKEN = "username-taken"
    INVALID_CREDENTIALS = "invalid-credentials"


ERROR_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.MISSING_FIELDS: 400,
    ErrorCode.INVALID_RECIPIENT_ID: 400,
    ErrorCode.EMPTY_MESSAGE: 400,
    ErrorCode.INVALID_MESSAGE_ID: 400,
    ErrorCode.INVALID_USERNAME: 400,
    ErrorCode.WEAK_PASSWORD: 400,
    ErrorCode.NO_SESSION: 401,
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.UNAUTHORIZED_MESSAGE_ACCESS: 403,
    ErrorCode.RECIPIENT_NOT_FOUND: 404,
    ErrorCode.USERNAME_TAKEN: 409,
    ErrorCode.STORE_UNAVAILABLE: 503,
}


def failure(code: ErrorCode, message: str) -> Dict[str, Any]:
    """Build a failure envelope."""
    return {
        "success": False,
        "error": code.value,
        "message": message,
    }


def status_for(error: str) -> int:
    """HTTP status for an error code string (400 if unknown)."""
    try:
        return ERROR_STATUS[ErrorCode(error)]
    except (ValueError, KeyError):
        return 400
