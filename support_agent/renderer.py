"""
Typewriter rendering of bot answers.

Only one reveal runs at a time. Starting a new one cancels the running reveal,
whose message is completed instantly; either way the finished message is
handed to `on_complete` for persistence.
"""
from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional, Tuple

from storefront.utils.logger import get_logger

from .history import ConversationHistory
from .models import Message, Sender

logger = get_logger("support_agent.renderer")


class ResponseRenderer:
    def __init__(
        self,
        history: ConversationHistory,
        on_complete: Callable[[Message], None],
        interval: float = 0.02,
        on_update: Optional[Callable[[Message], None]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.history = history
        self.on_complete = on_complete
        self.on_update = on_update
        self.interval = interval
        self._sleep = sleep
        self._task: Optional[asyncio.Task] = None
        self._current: Optional[Tuple[Message, str]] = None

    @property
    def streaming(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, text: str) -> Message:
        """Append an empty bot message and begin revealing `text` into it."""
        self.cancel()
        message = self.history.append(Message(text="", sender=Sender.BOT))
        self._current = (message, text)
        self._task = asyncio.create_task(self._reveal(message, text))
        return message

    async def render(self, text: str) -> Message:
        message = self.start(text)
        await self.wait()
        return message

    async def wait(self) -> None:
        task = self._task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    def cancel(self) -> None:
        """Stop the running reveal; its message is completed at once."""
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        logger.debug("Reveal interrupted; completing message instantly")
        if self._current is not None:
            message, text = self._current
            message.text = text
            self._finish(message)

    async def _reveal(self, message: Message, text: str) -> None:
        for i in range(1, len(text) + 1):
            message.text = text[:i]
            if self.on_update:
                self.on_update(message)
            await self._sleep(self.interval)
        self._finish(message)

    def _finish(self, message: Message) -> None:
        self._current = None
        self.history.save()
        self.on_complete(message)
