"""
Tests for the pending-message queue: retry with backoff, exactly-once queueing,
drain on reconnect and error classification.
"""

import asyncio

import httpx
import pytest

from support_agent.api_client import SupportApiClient, SupportApiError
from support_agent.models import DeliveryStatus, PendingItem
from support_agent.pending_queue import PendingQueue


def _item(cid="cid-1", token="anon_1", text="hello"):
    return PendingItem(token, "user", text, "2024-01-01T00:00:00+00:00", cid)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def queue(state, api, sleeps):
    async def fake_sleep(delay):
        sleeps.append(delay)

    return PendingQueue(state, api, retries=3, base_delay=0.5, sleep=fake_sleep)


@pytest.mark.asyncio
async def test_success_first_try(queue, api, state):
    assert await queue.post_with_retry(_item()) == DeliveryStatus.SENT
    assert len(api.post_attempts) == 1
    assert state.load_pending() == []


@pytest.mark.asyncio
async def test_transient_error_then_success_uses_exponential_backoff(queue, api, sleeps):
    api.post_errors = [SupportApiError(503, "busy"), SupportApiError(None, "timeout")]
    assert await queue.post_with_retry(_item()) == DeliveryStatus.SENT
    assert len(api.post_attempts) == 3
    assert sleeps == [0.5, 1.0]


@pytest.mark.asyncio
async def test_exhausted_retries_queue_once(queue, api, state, sleeps):
    api.online = False
    statuses = []
    queue.on_status = lambda cid, status: statuses.append((cid, status))

    assert await queue.post_with_retry(_item()) == DeliveryStatus.PENDING
    assert len(api.post_attempts) == 4
    assert sleeps == [0.5, 1.0, 2.0]

    # Same message failing again must not be queued twice
    assert await queue.post_with_retry(_item(), retries=0) == DeliveryStatus.PENDING
    assert [i.client_message_id for i in state.load_pending()] == ["cid-1"]
    assert statuses[-1] == ("cid-1", DeliveryStatus.PENDING)


@pytest.mark.asyncio
async def test_permanent_error_is_not_queued(queue, api, state):
    api.post_errors = [SupportApiError(400, "missing fields")]
    assert await queue.post_with_retry(_item()) == DeliveryStatus.FAILED
    assert len(api.post_attempts) == 1
    assert state.load_pending() == []


def test_rate_limit_and_timeout_are_retryable():
    assert SupportApiError(429, "slow down").retryable
    assert SupportApiError(408, "timeout").retryable
    assert SupportApiError(None, "offline").retryable
    assert not SupportApiError(404, "nope").retryable


@pytest.mark.asyncio
async def test_drain_removes_only_confirmed(queue, api, state):
    api.online = False
    await queue.post_with_retry(_item("a"), retries=0)
    await queue.post_with_retry(_item("b"), retries=0)

    api.online = True
    api.post_errors = [SupportApiError(500, "db error")]
    result = await queue.retry_pending()

    assert result.confirmed == ["b"]
    assert result.remaining == 1
    assert [i.client_message_id for i in state.load_pending()] == ["a"]

    result = await queue.retry_pending()
    assert result.confirmed == ["a"]
    assert state.load_pending() == []
    assert api.posted_ids("anon_1") == ["b", "a"]


@pytest.mark.asyncio
async def test_drain_drops_permanently_rejected_items(queue, api, state):
    await queue.enqueue(_item("bad"))
    api.post_errors = [SupportApiError(422, "invalid")]
    statuses = []
    queue.on_status = lambda cid, status: statuses.append((cid, status))

    result = await queue.retry_pending()
    assert result.failed == ["bad"]
    assert state.load_pending() == []
    assert statuses == [("bad", DeliveryStatus.FAILED)]


@pytest.mark.asyncio
async def test_concurrent_drains_post_each_item_once(queue, api):
    await queue.enqueue(_item("a"))
    await queue.enqueue(_item("b"))

    await asyncio.gather(queue.retry_pending(), queue.retry_pending())

    assert [p["clientMessageId"] for p in api.post_attempts] == ["a", "b"]


@pytest.mark.asyncio
async def test_rebind_moves_items_to_new_token(queue, state):
    await queue.enqueue(_item("a", token="anon_1"))
    await queue.enqueue(_item("b", token="other"))
    assert await queue.rebind("anon_1", "user_42") == 1
    tokens = {i.client_message_id: i.session_token for i in state.load_pending()}
    assert tokens == {"a": "user_42", "b": "other"}


@pytest.mark.asyncio
async def test_success_reports_sent(queue):
    statuses = []
    queue.on_status = lambda cid, status: statuses.append((cid, status))
    await queue.post_with_retry(_item())
    assert statuses == [("cid-1", DeliveryStatus.SENT)]


@pytest.mark.asyncio
async def test_html_answer_from_portal_queues_message(state):
    def handler(request):
        return httpx.Response(302, headers={"Location": "http://portal.test/"}, text="<html>login</html>")

    client = SupportApiClient(
        "http://support.test",
        client=httpx.AsyncClient(base_url="http://support.test", transport=httpx.MockTransport(handler)),
    )
    queue = PendingQueue(state, client, retries=0)

    assert await queue.post_with_retry(_item()) == DeliveryStatus.PENDING
    assert [i.client_message_id for i in state.load_pending()] == ["cid-1"]
    await client.aclose()


@pytest.mark.asyncio
async def test_clear_waits_for_running_drain(queue, api, state):
    await queue.enqueue(_item("a"))
    started = asyncio.Event()
    release = asyncio.Event()
    original = api.post_message
    order = []

    async def gated_post(payload):
        started.set()
        await release.wait()
        order.append("post")
        return await original(payload)

    async def delete_remote():
        order.append("delete")

    api.post_message = gated_post
    drain = asyncio.create_task(queue.retry_pending())
    await started.wait()
    clearing = asyncio.create_task(queue.clear(delete_remote))
    await asyncio.sleep(0)
    release.set()
    await asyncio.gather(drain, clearing)

    assert order == ["post", "delete"]
    assert state.load_pending() == []
