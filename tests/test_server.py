"""
API tests for the storefront support backend.

Stores are replaced through app.dependency_overrides, so no database is needed.
"""

import pytest
from fastapi.testclient import TestClient

from storefront.api.server import app, get_catalog_store, get_chat_store
from storefront.utils.supabase_client import SupabaseError


class FakeChatStore:
    def __init__(self):
        self.rows = {}
        self.fail = False

    def list_messages(self, session_token):
        if self.fail:
            raise SupabaseError("boom", 500)
        return self.rows.get(session_token, [])

    def insert_message(self, session_token, role, message, created_at=None, client_message_id=None):
        if self.fail:
            raise SupabaseError("boom", 500)
        rows = self.rows.setdefault(session_token, [])
        if client_message_id and any(r.get("client_message_id") == client_message_id for r in rows):
            return False
        rows.append({
            "id": len(rows) + 1,
            "session_token": session_token,
            "role": role,
            "message": message,
            "created_at": created_at,
            "client_message_id": client_message_id,
        })
        return True

    def delete_messages(self, session_token):
        self.rows.pop(session_token, None)

    def associate(self, session_token, user_id):
        canonical = f"user_{user_id}"
        self.rows.setdefault(canonical, []).extend(self.rows.pop(session_token, []))
        return canonical


class FakeCatalogStore:
    def search_inventory(self, query):
        if query.lower() == "things fall apart":
            return {"ebooks": [{"id": "e1", "title": "Things Fall Apart", "price": 0, "is_free": True}]}
        return {}

    def similar_titles(self, query, limit=6):
        return {"ebooks": [], "limit": limit}

    def recommendations(self):
        return {"newEbooks": [{"id": "e1"}], "newProducts": []}

    def product_availability(self, name):
        return [{"id": 1, "name": "HP Charger", "stock_quantity": 3, "in_stock": True}] if "charger" in name.lower() else []

    def search_posts(self, query, limit=5):
        return []

    def find_ebook(self, title):
        return [{"id": "e1", "title": "Things Fall Apart"}]


@pytest.fixture
def chat_store():
    return FakeChatStore()


@pytest.fixture
def client(chat_store):
    app.dependency_overrides[get_chat_store] = lambda: chat_store
    app.dependency_overrides[get_catalog_store] = lambda: FakeCatalogStore()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _message(cid="cid-1", text="hello"):
    return {
        "session_token": "anon_1",
        "role": "user",
        "message": text,
        "created_at": "2024-01-01T00:00:00Z",
        "clientMessageId": cid,
    }


class TestSessions:
    def test_history_requires_token(self, client):
        r = client.get("/api/customer-support/sessions")
        assert r.status_code == 400
        assert r.json() == {"error": "missing session_token"}

    def test_post_then_fetch(self, client):
        assert client.post("/api/customer-support/messages", json=_message()).json()["ok"] is True
        r = client.get("/api/customer-support/sessions", params={"session_token": "anon_1"})
        assert r.status_code == 200
        messages = r.json()["messages"]
        assert [m["message"] for m in messages] == ["hello"]
        assert messages[0]["client_message_id"] == "cid-1"

    def test_replay_is_acknowledged_as_duplicate(self, client, chat_store):
        client.post("/api/customer-support/messages", json=_message())
        r = client.post("/api/customer-support/messages", json=_message())
        assert r.status_code == 200
        assert r.json()["duplicate"] is True
        assert len(chat_store.rows["anon_1"]) == 1

    def test_missing_fields(self, client):
        r = client.post("/api/customer-support/messages", json={"session_token": "anon_1"})
        assert r.status_code == 400
        assert r.json() == {"error": "missing fields"}

    def test_db_failure_is_500(self, client, chat_store):
        chat_store.fail = True
        r = client.post("/api/customer-support/messages", json=_message())
        assert r.status_code == 500
        assert r.json() == {"error": "db error"}

    def test_delete(self, client, chat_store):
        client.post("/api/customer-support/messages", json=_message())
        r = client.delete("/api/customer-support/messages", params={"session_token": "anon_1"})
        assert r.status_code == 200
        assert "anon_1" not in chat_store.rows

    def test_open_session(self, client):
        assert client.post("/api/customer-support/sessions", json={"session_token": "anon_1"}).json()["ok"] is True
        assert client.post("/api/customer-support/sessions", json={}).status_code == 400

    def test_associate(self, client, chat_store):
        client.post("/api/customer-support/messages", json=_message())
        r = client.post("/api/customer-support/associate", json={"session_token": "anon_1", "user_id": "42"})
        assert r.json() == {"ok": True, "canonical_token": "user_42"}
        assert len(chat_store.rows["user_42"]) == 1


class TestCatalog:
    def test_search_inventory_hit(self, client):
        r = client.post("/api/search-inventory", json={"query": "Things Fall Apart"})
        assert r.json()["ebooks"][0]["title"] == "Things Fall Apart"

    def test_search_inventory_miss_is_message(self, client):
        r = client.post("/api/search-inventory", json={"query": "nothing"})
        assert r.json() == {"message": "No matches found for 'nothing'."}

    def test_search_inventory_requires_query(self, client):
        r = client.post("/api/search-inventory", json={"query": "  "})
        assert r.status_code == 400

    def test_similar_titles_default_limit(self, client):
        assert client.post("/api/similar-titles", json={"query": "achebe"}).json()["limit"] == 6

    def test_recommendations(self, client):
        assert "newEbooks" in client.get("/api/recommendations").json()

    def test_product_availability(self, client):
        assert client.post("/api/product-availability", json={"product_name": "charger"}).json()["products"][0]["in_stock"]
        assert "message" in client.post("/api/product-availability", json={"product_name": "drone"}).json()

    def test_posts_and_ebooks(self, client):
        assert "message" in client.post("/api/posts/search", json={"query": "news"}).json()
        assert client.post("/api/ebooks/search", json={"title": "things"}).json()["ebooks"]


def test_health(client):
    body = client.get("/health").json()
    assert body["status"] == "online"
