"""
Stateful chat session over OpenAI chat completions with function tools.

The session owns the running message list; the dispatcher only sees
`ModelTurn`s (text and/or tool calls) and hands tool results back.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from openai import AsyncOpenAI

from storefront.utils.logger import get_logger

from .prompts import SYSTEM_PROMPT

logger = get_logger("support_agent.llm")


@dataclass
class ToolCall:
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ModelTurn:
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)


class ChatSession(Protocol):
    async def send_message(self, text: str) -> ModelTurn:
        ...

    async def send_tool_results(self, results: List[tuple]) -> ModelTurn:
        ...

    def checkpoint(self) -> int:
        ...

    def rollback(self, checkpoint: int) -> None:
        ...


def _parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Unparseable tool arguments: {raw!r}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


class OpenAIChatSession:
    """One conversation with the model. Not shared between chats."""

    def __init__(
        self,
        tools: List[Dict[str, Any]],
        model: str = "gpt-4o-mini",
        temperature: float = 0.3,
        max_tokens: int = 1024,
        timeout: float = 20.0,
        client: Optional[AsyncOpenAI] = None,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        # max_retries=0: a failed call surfaces at once and the chat apologises
        self.client = client or AsyncOpenAI(timeout=timeout, max_retries=0)
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.tools = tools
        self.messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]

    def seed_history(self, turns: List[Dict[str, str]]) -> None:
        """Prime the session with earlier `{role, content}` turns."""
        self.messages.extend(turns)

    def checkpoint(self) -> int:
        return len(self.messages)

    def rollback(self, checkpoint: int) -> None:
        """Drop a half-finished exchange (e.g. tool calls left without results)."""
        del self.messages[max(checkpoint, 1):]

    async def send_message(self, text: str) -> ModelTurn:
        self.messages.append({"role": "user", "content": text})
        return await self._complete()

    async def send_tool_results(self, results: List[tuple]) -> ModelTurn:
        """`results` is a list of (ToolCall, result dict) in call order."""
        for call, result in results:
            self.messages.append({
                "role": "tool",
                "tool_call_id": call.id,
                "content": json.dumps(result, default=str),
            })
        return await self._complete()

    async def _complete(self) -> ModelTurn:
        kwargs: Dict[str, Any] = {"tools": self.tools} if self.tools else {}
        completion = await self.client.chat.completions.create(
            model=self.model,
            messages=self.messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            **kwargs,
        )
        message = completion.choices[0].message

        tool_calls = [
            ToolCall(id=tc.id, name=tc.function.name, arguments=_parse_arguments(tc.function.arguments))
            for tc in (message.tool_calls or [])
        ]

        entry: Dict[str, Any] = {"role": "assistant", "content": message.content or ""}
        if message.tool_calls:
            entry["tool_calls"] = [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {"name": tc.function.name, "arguments": tc.function.arguments or "{}"},
                }
                for tc in message.tool_calls
            ]
        self.messages.append(entry)

        return ModelTurn(text=(message.content or "").strip(), tool_calls=tool_calls)
