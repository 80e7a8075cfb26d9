"""
REST API router for messaging and account operations.

Provides FastAPI routes that expose MessagingService and AccountService over
HTTP. Parameters are read from the query string and every route accepts both
GET and POST. The caller's identity comes from the session (Starlette
SessionMiddleware must be installed on the app).

Usage:
    from fastapi import FastAPI
    from starlette.middleware.sessions import SessionMiddleware
    from graphpress.core import GraphStorage
    from graphpress.service import MessagingService, AccountService, create_rest_router

    app = FastAPI()
    app.add_middleware(SessionMiddleware, secret_key="...")
    storage = GraphStorage("graph.json")
    router = create_rest_router(MessagingService(storage), AccountService(storage))
    app.include_router(router, prefix="/api")
"""

from typing import Any, Dict, Optional, Union

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from .accounts import AccountService
from .errors import status_for
from .messaging import MessagingService

SESSION_KEY = "id"

METHODS = ["GET", "POST"]


def get_session_id(request: Request) -> Optional[str]:
    """Node ID bound to the current session, if any."""
    return request.session.get(SESSION_KEY)


def _respond(result: Dict[str, Any]) -> Union[Dict[str, Any], JSONResponse]:
    """Return successes as-is and failures with their mapped status code."""
    if result.get("success", False):
        return result
    return JSONResponse(status_code=status_for(result.get("error", "")), content=result)


def create_rest_router(
    messaging: MessagingService,
    accounts: AccountService,
    prefix: str = "",
) -> APIRouter:
    """
    Create a FastAPI router with the messaging and account endpoints.

    Args:
        messaging: MessagingService instance to use for message operations
        accounts: AccountService instance to use for signup/login
        prefix: Optional URL prefix for all routes

    Returns:
        Configured APIRouter
    """
    router = APIRouter(prefix=prefix, tags=["messaging"])

    # ==================== Messaging Endpoints ====================

    @router.api_route("/message", methods=METHODS)
    async def send_message(
        to: Optional[str] = Query(None, description="Recipient node ID"),
        message: Optional[str] = Query(None, description="Message text"),
        session_id: Optional[str] = Depends(get_session_id),
    ):
        """Send a message to another user."""
        return _respond(messaging.send(session_id, to, message))

    @router.api_route("/fetchUnreadMessageCount", methods=METHODS)
    async def fetch_unread_message_count(session_id: Optional[str] = Depends(get_session_id)):
        """Count incoming messages (read and unread)."""
        return _respond(messaging.fetch_unread_count(session_id))

    @router.api_route("/fetchInbox", methods=METHODS)
    async def fetch_inbox(session_id: Optional[str] = Depends(get_session_id)):
        """List incoming messages with 70-character previews."""
        return _respond(messaging.fetch_inbox(session_id))

    @router.api_route("/fetchMessage", methods=METHODS)
    async def fetch_message(
        msgid: Optional[str] = Query(None, description="Message ID"),
        session_id: Optional[str] = Depends(get_session_id),
    ):
        """Fetch a message sent to or by the current user and mark it read."""
        return _respond(messaging.fetch_message(session_id, msgid))

    # ==================== Account Endpoints ====================

    @router.api_route("/signup", methods=METHODS)
    async def signup(
        username: Optional[str] = Query(None),
        password: Optional[str] = Query(None),
    ):
        """Create a new user."""
        return _respond(accounts.signup(username, password))

    @router.api_route("/login", methods=METHODS)
    async def login(
        request: Request,
        username: Optional[str] = Query(None),
        password: Optional[str] = Query(None),
    ):
        """Verify credentials and bind the user to the session."""
        result = accounts.login(username, password)
        if result.get("success"):
            request.session.clear()
            request.session[SESSION_KEY] = result["id"]
        return _respond(result)

    @router.api_route("/logout", methods=METHODS)
    async def logout(request: Request) -> Dict[str, Any]:
        """Clear the session."""
        request.session.clear()
        return {"success": True}

    @router.api_route("/whoami", methods=METHODS)
    async def whoami(session_id: Optional[str] = Depends(get_session_id)):
        """Identity of the logged in user."""
        return _respond(accounts.whoami(session_id))

    return router
