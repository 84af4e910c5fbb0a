"""
Client-side persistent state for the support chat.

`SessionStore` is the injected key/value interface (get/set/delete); the chat
never touches ambient storage directly. Three backends:

- MemorySessionStore   tests and throwaway sessions
- JsonFileSessionStore one JSON document on disk (the terminal client's
                       equivalent of browser local storage)
- RedisSessionStore    shared state for server-side embeddings of the chat

`LocalChatState` gives typed access to the four keys the chat keeps: the last
200 messages, the session token, the pending-delivery queue and the theme.
"""
from __future__ import annotations

import json
import os
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import redis

from storefront.utils.logger import get_logger

from .models import Message, PendingItem

logger = get_logger("support_agent.storage")

HISTORY_KEY = "cs_chat_history"
TOKEN_KEY = "cs_session_token"
PENDING_KEY = "cs_pending_messages"
THEME_KEY = "cs_chat_theme"

THEMES = ("light", "dark")


class SessionStore(ABC):
    """Minimal key/value contract for JSON-serialisable values."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class MemorySessionStore(SessionStore):
    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def set(self, key: str, value: Any) -> None:
        # Stored serialised so callers never share mutable state with the store
        self._data[key] = json.dumps(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class JsonFileSessionStore(SessionStore):
    """All keys in one JSON file, rewritten atomically on every change."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            return data if isinstance(data, dict) else {}
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable chat state at {self.path} ({e}); starting empty")
            return {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f)
        os.replace(tmp, self.path)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


class RedisSessionStore(SessionStore):
    """
    Keys live under `support:{namespace}:{key}`.

    Connection priority:
    1. REDIS_URL (e.g. rediss:// for hosted Redis)
    2. REDIS_HOST + REDIS_PORT (local)
    """

    def __init__(self, namespace: str, client: Optional[redis.Redis] = None, ttl_seconds: int = 30 * 24 * 3600):
        self.namespace = namespace
        self.ttl_seconds = ttl_seconds
        if client is not None:
            self.client = client
        elif os.getenv("REDIS_URL"):
            self.client = redis.from_url(
                os.environ["REDIS_URL"],
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        else:
            self.client = redis.Redis(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", "6379")),
                db=int(os.getenv("REDIS_DB", "0")),
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )

    def _key(self, key: str) -> str:
        return f"support:{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        try:
            raw = self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis read error for {key}: {e}")
            return None
        return json.loads(raw) if raw else None

    def set(self, key: str, value: Any) -> None:
        try:
            self.client.setex(self._key(key), self.ttl_seconds, json.dumps(value))
        except redis.RedisError as e:
            logger.warning(f"Redis write error for {key}: {e}")

    def delete(self, key: str) -> None:
        try:
            self.client.delete(self._key(key))
        except redis.RedisError as e:
            logger.warning(f"Redis delete error for {key}: {e}")


def new_session_token() -> str:
    return f"anon_{uuid.uuid4().hex}"


class LocalChatState:
    """Typed view over a SessionStore."""

    def __init__(self, store: SessionStore, max_history: int = 200):
        self.store = store
        self.max_history = max_history

    # History

    def load_history(self) -> List[Message]:
        raw = self.store.get(HISTORY_KEY) or []
        messages = []
        for item in raw:
            try:
                messages.append(Message.from_dict(item))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed stored message: {e}")
        return messages

    def save_history(self, messages: List[Message]) -> None:
        self.store.set(HISTORY_KEY, [m.to_dict() for m in messages[-self.max_history:]])

    def clear_history(self) -> None:
        self.store.delete(HISTORY_KEY)

    # Session token

    def get_or_create_token(self) -> str:
        token = self.store.get(TOKEN_KEY)
        if not token:
            token = new_session_token()
            self.store.set(TOKEN_KEY, token)
            logger.info(f"Created session token {token}")
        return token

    def set_token(self, token: str) -> None:
        self.store.set(TOKEN_KEY, token)

    # Pending queue

    def load_pending(self) -> List[PendingItem]:
        raw = self.store.get(PENDING_KEY) or []
        return [PendingItem.from_payload(item) for item in raw]

    def save_pending(self, items: List[PendingItem]) -> None:
        if items:
            self.store.set(PENDING_KEY, [item.to_payload() for item in items])
        else:
            self.store.delete(PENDING_KEY)

    # Theme

    @property
    def theme(self) -> str:
        value = self.store.get(THEME_KEY)
        return value if value in THEMES else "light"

    @theme.setter
    def theme(self, value: str) -> None:
        if value not in THEMES:
            raise ValueError(f"Unknown theme: {value}")
        self.store.set(THEME_KEY, value)
