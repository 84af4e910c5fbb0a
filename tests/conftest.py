"""Shared fakes for the support chat tests."""

from typing import Any, Dict, List, Optional

import pytest

from storefront.core.config import SupportConfig
from support_agent.api_client import SupportApiError
from support_agent.llm import ModelTurn, ToolCall
from support_agent.storage import LocalChatState, MemorySessionStore


THINGS_FALL_APART = {
    "id": "eb-1",
    "title": "Things Fall Apart",
    "author": "Chinua Achebe",
    "price": 0,
    "is_free": True,
}


class FakeSupportApi:
    """
    In-memory stand-in for SupportApiClient.

    `online = False` makes every call fail like a dropped connection.
    `post_errors` is consumed one error per POST before posts succeed.
    Posted messages are deduplicated by clientMessageId like the real backend.
    """

    def __init__(self):
        self.online = True
        self.post_errors: List[SupportApiError] = []
        self.post_attempts: List[Dict[str, Any]] = []
        self.rows: Dict[str, List[Dict[str, Any]]] = {}
        self.deleted: List[str] = []
        self.associations: List[tuple] = []
        self.canonical_token: Optional[str] = None
        self.inventory: Dict[str, Any] = {}
        self.similar: Dict[str, Any] = {}
        self.lookup_calls: List[tuple] = []
        self.history_error: Optional[SupportApiError] = None
        self.closed = False

    def _check_online(self):
        if not self.online:
            raise SupportApiError(None, "ConnectError: offline")

    async def fetch_history(self, session_token):
        if self.history_error:
            raise self.history_error
        self._check_online()
        return list(self.rows.get(session_token, []))

    async def post_message(self, payload):
        self.post_attempts.append(dict(payload))
        self._check_online()
        if self.post_errors:
            raise self.post_errors.pop(0)
        rows = self.rows.setdefault(payload["session_token"], [])
        if any(r.get("client_message_id") == payload["clientMessageId"] for r in rows):
            return {"ok": True, "duplicate": True}
        rows.append({
            "id": len(rows) + 1,
            "role": payload["role"],
            "message": payload["message"],
            "created_at": payload["created_at"],
            "client_message_id": payload["clientMessageId"],
        })
        return {"ok": True}

    async def delete_messages(self, session_token):
        self._check_online()
        self.deleted.append(session_token)
        self.rows.pop(session_token, None)

    async def associate(self, session_token, user_id):
        self._check_online()
        self.associations.append((session_token, user_id))
        return self.canonical_token

    async def search_inventory(self, query):
        self.lookup_calls.append(("search_inventory", query))
        self._check_online()
        return self.inventory.get(query) or {"message": f"No matches found for '{query}'."}

    async def similar_titles(self, query, limit=6):
        self.lookup_calls.append(("similar_titles", query))
        self._check_online()
        return self.similar.get(query, {})

    async def recommendations(self):
        self.lookup_calls.append(("recommendations", None))
        return {"newEbooks": [THINGS_FALL_APART]}

    async def product_availability(self, product_name):
        self.lookup_calls.append(("product_availability", product_name))
        return {"message": f"No product named '{product_name}' is currently listed."}

    async def search_posts(self, query):
        self.lookup_calls.append(("search_posts", query))
        return {"posts": []}

    async def find_ebook(self, title):
        self.lookup_calls.append(("find_ebook", title))
        return {"ebooks": [THINGS_FALL_APART]}

    async def aclose(self):
        self.closed = True

    def posted_ids(self, session_token):
        return [r["client_message_id"] for r in self.rows.get(session_token, [])]


class FakeChatSession:
    """Scripted model session; each send pops the next ModelTurn."""

    def __init__(self, turns: Optional[List[ModelTurn]] = None, error: Optional[Exception] = None):
        self.turns = list(turns or [])
        self.error = error
        self.sent: List[str] = []
        self.tool_results: List[List[tuple]] = []
        self.rollbacks: List[int] = []

    async def send_message(self, text):
        self.sent.append(text)
        return self._next()

    async def send_tool_results(self, results):
        self.tool_results.append(results)
        return self._next()

    def _next(self):
        if self.error:
            raise self.error
        if not self.turns:
            return ModelTurn(text="Happy to help!")
        return self.turns.pop(0)

    def checkpoint(self):
        return 0

    def rollback(self, checkpoint):
        self.rollbacks.append(checkpoint)

    @property
    def calls(self):
        return len(self.sent) + len(self.tool_results)


def tool_turn(*calls):
    """ModelTurn requesting the given (name, args) tool calls."""
    return ModelTurn(tool_calls=[ToolCall(id=f"call_{i}", name=n, arguments=a) for i, (n, a) in enumerate(calls)])


@pytest.fixture
def api():
    return FakeSupportApi()


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def state(store):
    return LocalChatState(store)


@pytest.fixture
def config():
    return SupportConfig(
        api_base_url="http://support.test",
        post_retries=2,
        retry_base_delay_s=0.0,
        typing_interval_s=0.0,
        max_tool_rounds=3,
    )
