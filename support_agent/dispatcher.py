"""
Message dispatcher: decides how a user message gets answered.

1. quick commands          canned reply, no model
2. book-looking query      proactive inventory search; a hit is answered directly
3. model + tool loop       every tool call of a turn is executed in order and
                           its result fed back, until the model answers in text
                           or `max_tool_rounds` is exceeded
4. negative book answer    one extra catalog lookup before "not found" is accepted

Any failure in step 3 becomes the fixed apology text.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from storefront.utils.logger import get_logger
from storefront.utils.structured_logger import StructuredLogger

from . import heuristics
from .api_client import SupportApiClient, SupportApiError
from .formatters import format_inventory_answer
from .llm import ChatSession, ModelTurn
from .models import Attachment
from .prompts import APOLOGY, attachment_note
from .tools import ToolName, execute_tool

logger = get_logger("support_agent.dispatcher")
events = StructuredLogger("dispatcher")


class ToolLoopExceeded(RuntimeError):
    """The model kept asking for tools past the configured number of rounds."""


@dataclass
class DispatchResult:
    text: str
    source: str  # quick_command | inventory | model | recheck | fallback


class MessageDispatcher:
    def __init__(
        self,
        api: SupportApiClient,
        session: ChatSession,
        tool_result_limit: int = 6,
        max_tool_rounds: int = 5,
    ):
        self.api = api
        self.session = session
        self.tool_result_limit = tool_result_limit
        self.max_tool_rounds = max_tool_rounds

    async def dispatch(self, text: str, attachment: Optional[Attachment] = None) -> DispatchResult:
        quick = heuristics.match_quick_command(text)
        if quick:
            name, reply = quick
            events.info("quick_command", f"Answered with {name}", {"command": name})
            return DispatchResult(reply, "quick_command")

        book_query = heuristics.extract_book_query(text) if heuristics.looks_like_book_query(text) else None
        if book_query:
            answer = await self._inventory_answer(ToolName.SEARCH_INVENTORY, {"query": book_query}, book_query)
            if answer:
                events.info("inventory_hit", "Answered from inventory", {"query": book_query})
                return DispatchResult(answer, "inventory")

        prompt = text
        if attachment:
            prompt = f"{text}\n\n{attachment_note(attachment.name, attachment.type)}"

        checkpoint = self.session.checkpoint()
        try:
            answer = await self._run_model(prompt)
        except Exception as e:
            self.session.rollback(checkpoint)
            logger.error(f"Model loop failed: {e.__class__.__name__}: {e}")
            events.error("fallback", "Replied with apology", {"error": str(e)})
            return DispatchResult(APOLOGY, "fallback")

        if book_query and heuristics.is_negative_answer(answer):
            recheck = await self._inventory_answer(ToolName.FIND_SIMILAR_TITLES, {"query": book_query}, book_query)
            if recheck:
                events.info("inventory_recheck", "Overrode a not-found answer", {"query": book_query})
                return DispatchResult(recheck, "recheck")

        return DispatchResult(answer, "model")

    async def _inventory_answer(self, tool: ToolName, args: Dict[str, Any], query: str) -> Optional[str]:
        """One catalog lookup rendered as an answer; None on a miss or a failed lookup."""
        try:
            result = await execute_tool(self.api, tool.value, args, self.tool_result_limit)
        except SupportApiError as e:
            logger.warning(f"Inventory lookup for {query!r} failed: {e}")
            return None
        if "error" in result:
            return None
        return format_inventory_answer(query, result)

    async def _run_model(self, prompt: str) -> str:
        turn: ModelTurn = await self.session.send_message(prompt)
        rounds = 0
        while turn.tool_calls:
            if rounds >= self.max_tool_rounds:
                raise ToolLoopExceeded(f"still requesting tools after {rounds} rounds")
            results: List[tuple] = []
            for call in turn.tool_calls:
                result = await execute_tool(self.api, call.name, call.arguments, self.tool_result_limit)
                results.append((call, result))
            turn = await self.session.send_tool_results(results)
            rounds += 1

        if not turn.text:
            raise ValueError("model returned an empty answer")
        return turn.text
