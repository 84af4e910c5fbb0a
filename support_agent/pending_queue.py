"""
Pending-message queue: bounded retry on persistence, then a durable local buffer.

Delivery rules:
- retryable failures (offline, timeout, 408/425/429, 5xx) are retried with
  exponential backoff, then the payload is queued exactly once per
  clientMessageId and the message is marked pending;
- permanent failures (other 4xx) are never queued, the message is marked failed;
- a message is pending from its first POST until the server confirms it;
- `retry_pending()` re-posts every queued item and removes an item only after
  the server confirmed it.

All queue mutations run under one asyncio.Lock so a drain on mount and a drain
on the online event cannot post the same item twice.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from storefront.utils.logger import get_logger
from storefront.utils.structured_logger import StructuredLogger

from .api_client import SupportApiClient, SupportApiError
from .models import DeliveryStatus, PendingItem
from .storage import LocalChatState

logger = get_logger("support_agent.pending_queue")
events = StructuredLogger("pending_queue")

StatusCallback = Callable[[str, DeliveryStatus], None]


@dataclass
class DrainResult:
    confirmed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    remaining: int = 0


class PendingQueue:
    def __init__(
        self,
        state: LocalChatState,
        api: SupportApiClient,
        retries: int = 3,
        base_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_status: Optional[StatusCallback] = None,
    ):
        self.state = state
        self.api = api
        self.retries = retries
        self.base_delay = base_delay
        self._sleep = sleep
        self.on_status = on_status
        self._lock = asyncio.Lock()

    def _notify(self, client_message_id: str, status: DeliveryStatus) -> None:
        if self.on_status:
            self.on_status(client_message_id, status)

    async def post_with_retry(self, item: PendingItem, retries: Optional[int] = None) -> DeliveryStatus:
        """POST one message; returns the delivery status the UI should show."""
        retries = self.retries if retries is None else retries
        payload = item.to_payload()

        for attempt in range(retries + 1):
            try:
                await self.api.post_message(payload)
                self._notify(item.client_message_id, DeliveryStatus.SENT)
                return DeliveryStatus.SENT
            except SupportApiError as e:
                if not e.retryable:
                    logger.error(f"Message {item.client_message_id} rejected by server: {e}")
                    self._notify(item.client_message_id, DeliveryStatus.FAILED)
                    return DeliveryStatus.FAILED
                if attempt < retries:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(f"Persist attempt {attempt + 1} failed ({e}); retrying in {delay:.2f}s")
                    await self._sleep(delay)
                else:
                    logger.warning(f"Persist failed after {retries + 1} attempts ({e}); queueing")

        await self.enqueue(item)
        self._notify(item.client_message_id, DeliveryStatus.PENDING)
        return DeliveryStatus.PENDING

    async def enqueue(self, item: PendingItem) -> bool:
        """Add an item unless one with the same clientMessageId is already queued."""
        async with self._lock:
            items = self.state.load_pending()
            if any(i.client_message_id == item.client_message_id for i in items):
                return False
            items.append(item)
            self.state.save_pending(items)
            return True

    async def retry_pending(self) -> DrainResult:
        """Re-post every queued item once; keep the ones that still fail."""
        result = DrainResult()
        async with self._lock:
            items = self.state.load_pending()
            if not items:
                return result

            remaining: List[PendingItem] = []
            for item in items:
                try:
                    await self.api.post_message(item.to_payload())
                    result.confirmed.append(item.client_message_id)
                except SupportApiError as e:
                    if e.retryable:
                        remaining.append(item)
                    else:
                        logger.error(f"Dropping queued message {item.client_message_id}: {e}")
                        result.failed.append(item.client_message_id)

            self.state.save_pending(remaining)
            result.remaining = len(remaining)

        for client_message_id in result.confirmed:
            self._notify(client_message_id, DeliveryStatus.SENT)
        for client_message_id in result.failed:
            self._notify(client_message_id, DeliveryStatus.FAILED)

        events.info("queue_drain", "Retried pending messages", {
            "confirmed": len(result.confirmed),
            "failed": len(result.failed),
            "remaining": result.remaining,
        })
        return result

    async def rebind(self, old_token: str, new_token: str) -> int:
        """Point queued items at a new session token (after association)."""
        async with self._lock:
            items = self.state.load_pending()
            changed = 0
            for item in items:
                if item.session_token == old_token:
                    item.session_token = new_token
                    changed += 1
            if changed:
                self.state.save_pending(items)
            return changed

    async def clear(self, remote_delete: Optional[Callable[[], Awaitable[None]]] = None) -> None:
        """
        Empty the queue, then run `remote_delete` while still holding the lock.

        A drain that is already posting finishes first, and none can start
        until the server rows are gone.
        """
        async with self._lock:
            self.state.save_pending([])
            if remote_delete is not None:
                await remote_delete()

    def pending_ids(self) -> List[str]:
        return [i.client_message_id for i in self.state.load_pending()]
