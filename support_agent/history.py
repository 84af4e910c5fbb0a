"""
In-memory conversation plus its local and remote mirrors.
"""
from __future__ import annotations

from typing import List, Optional

from storefront.utils.logger import get_logger

from .api_client import SupportApiClient, SupportApiError
from .models import DeliveryStatus, Message, PendingItem, Sender
from .pending_queue import PendingQueue
from .prompts import GREETING
from .storage import LocalChatState

logger = get_logger("support_agent.history")


class ConversationHistory:
    def __init__(self, state: LocalChatState, api: SupportApiClient, queue: PendingQueue, greeting: str = GREETING):
        self.state = state
        self.api = api
        self.queue = queue
        self.greeting = greeting
        self.messages: List[Message] = []
        self.session_token: str = state.get_or_create_token()

    async def load(self) -> List[Message]:
        """
        Remote history wins when it has rows, then local history, then a greeting.

        Local messages still marked pending are kept from the local copy since
        the server has not confirmed them. Any whose POST was cut short before
        it reached the queue is queued now, so the next drain re-sends it.
        """
        local = self.state.load_history()
        try:
            rows = await self.api.fetch_history(self.session_token)
        except SupportApiError as e:
            logger.warning(f"History fetch failed for {self.session_token} ({e}); using local history")
            rows = []

        queued = set(self.queue.pending_ids())
        if rows:
            messages = [Message.from_remote(r) for r in rows]
            known = {m.id for m in messages}
            messages.extend(
                m for m in local
                if m.id not in known and (m.id in queued or m.status == DeliveryStatus.PENDING)
            )
        elif local:
            messages = local
        else:
            messages = [Message(text=self.greeting, sender=Sender.BOT)]

        for m in messages:
            if m.id in queued:
                m.status = DeliveryStatus.PENDING
            elif m.status == DeliveryStatus.PENDING:
                await self.queue.enqueue(PendingItem.for_message(self.session_token, m))
                logger.info(f"Re-queued unconfirmed message {m.id}")

        self.messages = messages
        self.save()
        return self.messages

    def append(self, message: Message) -> Message:
        self.messages.append(message)
        self.save()
        return message

    def find(self, message_id: str) -> Optional[Message]:
        for m in self.messages:
            if m.id == message_id:
                return m
        return None

    def set_status(self, message_id: str, status: DeliveryStatus) -> None:
        message = self.find(message_id)
        if message is not None and message.status != status:
            message.status = status
            self.save()

    def save(self) -> None:
        self.state.save_history(self.messages)

    async def associate(self, user_id: str) -> Optional[str]:
        """
        Tie the anonymous session to a signed-in user.

        Adopts the canonical token the server returns and re-sends anything
        still queued under it. Failures leave the anonymous token in place.
        """
        try:
            canonical = await self.api.associate(self.session_token, user_id)
        except SupportApiError as e:
            logger.warning(f"Associate failed for {self.session_token}: {e}")
            return None

        if canonical and canonical != self.session_token:
            old = self.session_token
            self.session_token = canonical
            self.state.set_token(canonical)
            await self.queue.rebind(old, canonical)
            logger.info(f"Session {old} now {canonical}")
        if canonical:
            await self.queue.retry_pending()
        return canonical

    async def clear(self) -> None:
        """Forget the conversation everywhere: server rows, local keys, memory."""
        token = self.session_token

        async def delete_remote() -> None:
            try:
                await self.api.delete_messages(token)
            except SupportApiError as e:
                logger.warning(f"Remote delete failed for {token}: {e}")

        await self.queue.clear(delete_remote)
        self.state.clear_history()
        self.messages = []
