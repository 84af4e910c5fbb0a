"""
Remote session store for the customer-support chat.

Tables (Supabase):
  customer_support_chats
    id                 bigint  primary key
    session_token      text
    role               text    "user" | "bot"
    message            text
    created_at         timestamptz
    client_message_id  text    nullable, unique per session_token

  customer_support_sessions
    session_token      text    primary key
    user_id            uuid
    updated_at         timestamptz
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from storefront.utils.logger import get_logger
from storefront.utils.supabase_client import SupabaseClient, SupabaseError

logger = get_logger("data.chat_store")

CHATS_TABLE = "customer_support_chats"
SESSIONS_TABLE = "customer_support_sessions"


def canonical_token_for(user_id: str) -> str:
    """Session token adopted once an anonymous visitor signs in."""
    return f"user_{user_id}"


class ChatStore:
    """CRUD over the chat transcript rows, keyed by session token."""

    def __init__(self, client: SupabaseClient, max_history: int = 1000):
        self.client = client
        self.max_history = max_history

    def list_messages(self, session_token: str) -> List[Dict[str, Any]]:
        """All stored messages for a session, oldest first."""
        return self.client.select(
            CHATS_TABLE,
            filters={"session_token": session_token},
            select="id,session_token,role,message,created_at,client_message_id",
            order="created_at.asc",
        )

    def insert_message(
        self,
        session_token: str,
        role: str,
        message: str,
        created_at: Optional[str] = None,
        client_message_id: Optional[str] = None,
    ) -> bool:
        """
        Store one message and trim the session to the newest `max_history` rows.

        Returns False when a row with the same client_message_id already exists,
        which makes client retries idempotent.
        """
        if client_message_id:
            existing = self.client.select(
                CHATS_TABLE,
                filters={"session_token": session_token, "client_message_id": client_message_id},
                select="id",
                limit=1,
            )
            if existing:
                logger.info(f"Duplicate delivery ignored for {session_token}/{client_message_id}")
                return False

        row = {
            "session_token": session_token,
            "role": role,
            "message": message,
            "created_at": created_at or datetime.now(timezone.utc).isoformat(),
        }
        if client_message_id:
            row["client_message_id"] = client_message_id
        self.client.insert(CHATS_TABLE, [row])

        self._trim(session_token)
        return True

    def _trim(self, session_token: str) -> int:
        """Delete rows older than the newest `max_history`. Failures only warn."""
        try:
            stale = self.client.select(
                CHATS_TABLE,
                filters={"session_token": session_token},
                select="id",
                order="created_at.desc",
                offset=self.max_history,
                limit=100000,
            )
            if not stale:
                return 0
            ids = ",".join(str(r["id"]) for r in stale)
            self.client.delete(CHATS_TABLE, {"id": f"in.({ids})"})
            logger.info(f"Trimmed {len(stale)} old messages for {session_token}")
            return len(stale)
        except SupabaseError as e:
            logger.warning(f"Failed to trim history for {session_token}: {e}")
            return 0

    def delete_messages(self, session_token: str) -> None:
        """Remove every stored message for a session."""
        self.client.delete(CHATS_TABLE, {"session_token": session_token})
        logger.info(f"Deleted messages for session {session_token}")

    def associate(self, session_token: str, user_id: str) -> str:
        """
        Move an anonymous session's messages under the user's canonical token.

        Returns the canonical token.
        """
        canonical = canonical_token_for(user_id)

        if session_token != canonical:
            self.client.update(CHATS_TABLE, {"session_token": canonical}, {"session_token": session_token})

        self.client.upsert(
            SESSIONS_TABLE,
            [{
                "session_token": canonical,
                "user_id": user_id,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }],
            on_conflict="session_token",
        )

        if session_token != canonical:
            try:
                self.client.delete(SESSIONS_TABLE, {"session_token": session_token})
            except SupabaseError as e:
                logger.warning(f"Could not drop anonymous mapping {session_token}: {e}")

        logger.info(f"Associated session {session_token} with user {user_id} -> {canonical}")
        return canonical
