"""
SupportChat: the customer-support chat controller.

Wires the local/remote history, the pending queue, the dispatcher and the
renderer together, and tracks the informal chat state
(idle -> awaiting_response -> streaming -> idle).

Persistence never blocks the conversation: each finished message is posted
from a background task, so the in-memory order is always the send order.
"""
from __future__ import annotations

import asyncio
import time
from typing import Callable, List, Optional, Set

from storefront.core.config import SupportConfig, get_config
from storefront.utils.logger import get_logger

from .api_client import SupportApiClient
from .dispatcher import DispatchResult, MessageDispatcher
from .history import ConversationHistory
from .llm import ChatSession, OpenAIChatSession
from .models import Attachment, ChatState, DeliveryStatus, Message, PendingItem, Sender
from .pending_queue import DrainResult, PendingQueue
from .prompts import LOADING_STATUSES
from .renderer import ResponseRenderer
from .storage import JsonFileSessionStore, LocalChatState, SessionStore
from .tools import tool_declarations

logger = get_logger("support_agent.chat")

# Earlier turns replayed into a fresh model session on open
SEED_TURNS = 20


class SupportChat:
    def __init__(
        self,
        config: Optional[SupportConfig] = None,
        store: Optional[SessionStore] = None,
        api: Optional[SupportApiClient] = None,
        session: Optional[ChatSession] = None,
        on_update: Optional[Callable[[Message], None]] = None,
    ):
        self.config = config or get_config()
        self._owns_api = api is None

        self.state = LocalChatState(
            store or JsonFileSessionStore(self.config.local_state_path),
            max_history=self.config.max_local_history,
        )
        self.api = api or SupportApiClient(self.config.api_base_url, timeout=self.config.api_timeout_s)
        self.queue = PendingQueue(
            self.state,
            self.api,
            retries=self.config.post_retries,
            base_delay=self.config.retry_base_delay_s,
        )
        self.history = ConversationHistory(self.state, self.api, self.queue)
        self.queue.on_status = self.history.set_status

        self.session = session or OpenAIChatSession(
            tools=tool_declarations(),
            model=self.config.openai_model,
            temperature=self.config.temperature,
            max_tokens=self.config.max_output_tokens,
            timeout=self.config.model_timeout_s,
        )
        self.dispatcher = MessageDispatcher(
            self.api,
            self.session,
            tool_result_limit=self.config.tool_result_limit,
            max_tool_rounds=self.config.max_tool_rounds,
        )
        self.renderer = ResponseRenderer(
            self.history,
            on_complete=self._persist_in_background,
            interval=self.config.typing_interval_s,
            on_update=on_update,
        )

        self.chat_state = ChatState.IDLE
        self.closed = False
        self._awaiting_since: Optional[float] = None
        self._background: Set[asyncio.Task] = set()

    @property
    def messages(self) -> List[Message]:
        return self.history.messages

    @property
    def session_token(self) -> str:
        return self.history.session_token

    @property
    def theme(self) -> str:
        return self.state.theme

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def open(self) -> List[Message]:
        """Load history and flush anything queued by an earlier run."""
        messages = await self.history.load()
        if isinstance(self.session, OpenAIChatSession):
            self.session.seed_history([
                {"role": "user" if m.sender == Sender.USER else "assistant", "content": m.text}
                for m in messages[-SEED_TURNS:]
                if m.text
            ])
        await self.queue.retry_pending()
        logger.info(f"Chat opened for {self.session_token} with {len(messages)} messages")
        return messages

    async def close(self) -> None:
        """Stop rendering, finish in-flight persistence and release the HTTP client."""
        if self.closed:
            return
        self.closed = True
        self.renderer.cancel()
        await self.drain()
        if self._owns_api:
            await self.api.aclose()

    async def drain(self) -> None:
        """Wait for every background persistence task started so far."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    async def send(self, text: str, attachment: Optional[Attachment] = None) -> Optional[Message]:
        """
        Post a user message and render the reply.

        Returns the bot message, or None when there was nothing to send or the
        chat was closed before the reply arrived.
        """
        if self.closed:
            raise RuntimeError("chat is closed")
        text = (text or "").strip()
        if attachment and not text:
            text = f"I've shared a file: {attachment.name}"
        if not text:
            return None

        user_message = self.history.append(Message(text=text, sender=Sender.USER, attachment=attachment))
        self._persist_in_background(user_message)

        self.chat_state = ChatState.AWAITING_RESPONSE
        self._awaiting_since = time.monotonic()
        try:
            result: DispatchResult = await self.dispatcher.dispatch(text, attachment)
        finally:
            self._awaiting_since = None

        if self.closed:
            logger.info("Reply arrived after close; discarded")
            self.chat_state = ChatState.IDLE
            return None

        self.chat_state = ChatState.STREAMING
        bot_message = self.renderer.start(result.text)
        await self.renderer.wait()
        if not self.renderer.streaming:
            self.chat_state = ChatState.IDLE
        return bot_message

    async def clear(self) -> None:
        """Empty the conversation locally and remotely."""
        self.renderer.cancel()
        for task in list(self._background):
            task.cancel()
        await self.drain()
        await self.history.clear()
        self.chat_state = ChatState.IDLE

    async def handle_online(self) -> DrainResult:
        """Connectivity is back: re-send queued messages."""
        return await self.queue.retry_pending()

    async def set_user(self, user_id: str) -> Optional[str]:
        return await self.history.associate(user_id)

    def toggle_theme(self) -> str:
        self.state.theme = "dark" if self.state.theme == "light" else "light"
        return self.state.theme

    def status_text(self, now: Optional[float] = None) -> str:
        """Rotating loading line while the model is working; empty otherwise."""
        if self.chat_state != ChatState.AWAITING_RESPONSE or self._awaiting_since is None:
            return ""
        elapsed = (now if now is not None else time.monotonic()) - self._awaiting_since
        index = int(elapsed // self.config.status_rotate_s) % len(LOADING_STATUSES)
        return LOADING_STATUSES[index]

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _persist_in_background(self, message: Message) -> None:
        self.history.set_status(message.id, DeliveryStatus.PENDING)
        item = PendingItem.for_message(self.session_token, message)
        task = asyncio.create_task(self.queue.post_with_retry(item))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
