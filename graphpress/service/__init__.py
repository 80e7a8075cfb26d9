"""
graphpress.service - Messaging and account operations plus their REST router.

Usage:
    from graphpress.service import MessagingService, AccountService, create_rest_router
"""

from .errors import ErrorCode, ERROR_STATUS, failure, status_for
from .messaging import MessagingService, DEFAULT_PREVIEW_LENGTH
from .accounts import AccountService, hash_password, verify_password
from .rest_api import create_rest_router, get_session_id, SESSION_KEY

__all__ = [
    "ErrorCode",
    "ERROR_STATUS",
    "failure",
    "status_for",
    "MessagingService",
    "DEFAULT_PREVIEW_LENGTH",
    "AccountService",
    "hash_password",
    "verify_password",
    "create_rest_router",
    "get_session_id",
    "SESSION_KEY",
]
