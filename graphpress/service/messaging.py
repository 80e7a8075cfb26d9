"""
MessagingService - send, count, list and read messages between users.

Users are graph nodes and messages are directed edges. Every operation takes
the caller's session identity (the node ID bound to the session, or None) as
an explicit argument; the HTTP layer is responsible for extracting it.

Responses follow the usual envelope:
- success: {"success": True, ...payload}
- failure: {"success": False, "error": <code>, "message": <text>}

Validation happens before any store access. Store failures while persisting
(StorageError) are left to propagate to the app host, which maps them to
"store-unavailable".
"""

import logging
from typing import Any, Dict, Optional

from graphpress.core import GraphStorage, NodeHandle, NodeNotFoundError, is_valid_id

from .errors import ErrorCode, failure

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LENGTH = 70


class MessagingService:
    """
    Stateless messaging operations over an injected GraphStorage.

    fetch_unread_count() counts every incoming message, read or not. The name
    is kept for API compatibility with existing clients.
    """

    def __init__(self, storage: GraphStorage, preview_length: int = DEFAULT_PREVIEW_LENGTH):
        self._storage = storage
        self._preview_length = preview_length

    @property
    def storage(self) -> GraphStorage:
        return self._storage

    def _session_node(self, session_id: Optional[str]) -> Optional[NodeHandle]:
        """Resolve the session's node, or None if there is no usable session."""
        if not session_id or not is_valid_id(session_id):
            return None
        try:
            return self._storage.node(session_id)
        except NodeNotFoundError:
            logger.warning(f"Session refers to unknown node {session_id}")
            return None

    @staticmethod
    def _no_session() -> Dict[str, Any]:
        return failure(ErrorCode.NO_SESSION, "Session required.")

    # ==================== Operations ====================

    def send(
        self,
        session_id: Optional[str],
        to: Optional[str],
        message: Optional[str],
    ) -> Dict[str, Any]:
        """
        Send a message from the session's user to `to`.

        Args:
            session_id: Node ID bound to the caller's session
            to: Recipient node ID (32 hex characters)
            message: Message text

        Returns:
            Dict with the new message ID, or a failure envelope
        """
        me = self._session_node(session_id)
        if me is None:
            return self._no_session()

        if not to or message is None:
            return failure(ErrorCode.MISSING_FIELDS, "Valid recipient and message are required.")
        if not is_valid_id(to):
            return failure(ErrorCode.INVALID_RECIPIENT_ID, "Invalid recipient")
        if not message.strip():
            return failure(ErrorCode.EMPTY_MESSAGE, "Message can't be empty")

        try:
            recipient = self._storage.node(to)
        except NodeNotFoundError:
            logger.warning(f"SEND: {me.id} -> unknown recipient {to}")
            return failure(ErrorCode.RECIPIENT_NOT_FOUND, "Recipient not found")

        msg = me.message(recipient, message)
        logger.info(f"SEND: {me.id} -> {recipient.id} ({msg.id})")
        return {
            "success": True,
            "id": str(msg.id),
        }

    def fetch_unread_count(self, session_id: Optional[str]) -> Dict[str, Any]:
        """Count of incoming messages for the session's user, as a string."""
        me = self._session_node(session_id)
        if me is None:
            return self._no_session()

        incoming = me.get_incoming_messages()
        return {
            "success": True,
            "count": str(len(incoming)),
        }

    def fetch_inbox(self, session_id: Optional[str]) -> Dict[str, Any]:
        """
        List incoming messages for the session's user.

        Returns:
            Dict mapping message ID -> {from, message (preview), is_read}
        """
        me = self._session_node(session_id)
        if me is None:
            return self._no_session()

        messages = {}
        for m in me.get_incoming_messages():
            messages[str(m.id)] = {
                "from": m.tail().id,
                "message": m.content[:self._preview_length],
                "is_read": bool(m.is_read),
            }

        return {
            "success": True,
            "messages": messages,
        }

    def fetch_message(self, session_id: Optional[str], msgid: Optional[str]) -> Dict[str, Any]:
        """
        Fetch a single message and mark it read.

        The message must have been sent to or by the session's user.

        Returns:
            Dict with all message attributes plus "from" and "to" node IDs
        """
        me = self._session_node(session_id)
        if me is None:
            return self._no_session()

        if not msgid:
            return failure(ErrorCode.MISSING_FIELDS, "Valid message id required.")
        if not is_valid_id(msgid):
            return failure(ErrorCode.INVALID_MESSAGE_ID, "Invalid message ID")

        if not me.has_incoming_message(msgid) and not me.has_sent_message(msgid):
            logger.warning(f"FETCH: {me.id} denied access to message {msgid}")
            return failure(
                ErrorCode.UNAUTHORIZED_MESSAGE_ACCESS,
                "Message ID is not associated with the logged in user."
            )

        msg = self._storage.edge(msgid)
        msg.set_is_read(True)
        logger.info(f"FETCH: {me.id} read message {msg.id}")

        return {
            "success": True,
            "message": {
                **msg.attributes(),
                "from": str(msg.tail().id),
                "to": str(msg.head().id),
            },
        }
