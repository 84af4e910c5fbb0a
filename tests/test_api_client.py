"""Tests for the async support API client against a mock transport."""

import json

import httpx
import pytest

from support_agent.api_client import SupportApiClient, SupportApiError


def _client(handler):
    return SupportApiClient(
        "http://support.test/",
        client=httpx.AsyncClient(base_url="http://support.test", transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_fetch_history_sends_token():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["token"] = request.url.params["session_token"]
        return httpx.Response(200, json={"messages": [{"id": 1, "role": "user", "message": "hi"}]})

    rows = await _client(handler).fetch_history("anon_1")
    assert seen == {"path": "/api/customer-support/sessions", "token": "anon_1"}
    assert rows[0]["message"] == "hi"


@pytest.mark.asyncio
async def test_post_message_body():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    payload = {"session_token": "anon_1", "role": "user", "message": "hi",
               "created_at": "2024-01-01T00:00:00Z", "clientMessageId": "cid"}
    assert await _client(handler).post_message(payload) == {"ok": True}
    assert bodies == [payload]


@pytest.mark.asyncio
async def test_associate_returns_canonical_token():
    def handler(request):
        assert json.loads(request.content) == {"session_token": "anon_1", "user_id": "42"}
        return httpx.Response(200, json={"ok": True, "canonical_token": "user_42"})

    assert await _client(handler).associate("anon_1", "42") == "user_42"


@pytest.mark.asyncio
async def test_error_body_becomes_detail():
    def handler(request):
        return httpx.Response(500, json={"error": "db error"})

    with pytest.raises(SupportApiError) as exc:
        await _client(handler).delete_messages("anon_1")
    assert exc.value.status_code == 500
    assert exc.value.detail == "db error"
    assert exc.value.retryable


@pytest.mark.asyncio
async def test_non_json_error_body():
    def handler(request):
        return httpx.Response(404, text="not here")

    with pytest.raises(SupportApiError) as exc:
        await _client(handler).recommendations()
    assert exc.value.detail == "not here"
    assert not exc.value.retryable


@pytest.mark.asyncio
async def test_timeout_is_network_error():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(SupportApiError) as exc:
        await _client(handler).search_posts("news")
    assert exc.value.status_code is None
    assert exc.value.retryable


@pytest.mark.asyncio
async def test_redirect_to_login_page_is_retryable():
    def handler(request):
        return httpx.Response(302, headers={"Location": "http://portal.test/login"}, text="<html>login</html>")

    with pytest.raises(SupportApiError) as exc:
        await _client(handler).fetch_history("anon_1")
    assert exc.value.status_code == 302
    assert exc.value.retryable


@pytest.mark.asyncio
async def test_html_success_body_is_retryable_error():
    def handler(request):
        return httpx.Response(200, text="<html>Sign in to the hotel wifi</html>")

    with pytest.raises(SupportApiError) as exc:
        await _client(handler).post_message({"clientMessageId": "cid"})
    assert exc.value.status_code is None
    assert "not JSON" in exc.value.detail
    assert exc.value.retryable


@pytest.mark.asyncio
async def test_json_list_body_is_rejected():
    def handler(request):
        return httpx.Response(200, json=["unexpected"])

    with pytest.raises(SupportApiError) as exc:
        await _client(handler).recommendations()
    assert exc.value.status_code is None
    assert "list" in exc.value.detail
