"""
Lookup tools the model may call.

Each tool is an async handler keyed by `ToolName`; handlers take the model's
string arguments, call one backend lookup endpoint and return a JSON-safe dict:
`{products}`, `{ebooks}`, `{posts}`, `{newEbooks, newProducts}`, `{message}`
or `{error}`.

An `{error}` result is a normal answer the model narrates to the user. Only
transport failures (backend unreachable) raise.
"""
from __future__ import annotations

import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List

from storefront.utils.logger import get_logger
from storefront.utils.structured_logger import StructuredLogger

from .api_client import SupportApiClient, SupportApiError

logger = get_logger("support_agent.tools")
events = StructuredLogger("tools")


class ToolName(str, Enum):
    SEARCH_INVENTORY = "search_inventory"
    CHECK_PRODUCT_AVAILABILITY = "check_product_availability"
    FIND_SIMILAR_TITLES = "find_similar_titles"
    GET_RECOMMENDATIONS = "get_recommendations"
    SEARCH_POSTS = "search_posts"
    FIND_EBOOK = "find_ebook"


ToolResult = Dict[str, Any]
ToolHandler = Callable[[SupportApiClient, Dict[str, Any], int], Awaitable[ToolResult]]


def _arg(args: Dict[str, Any], key: str) -> str:
    value = args.get(key)
    return str(value).strip() if value is not None else ""


def _cap(result: ToolResult, limit: int) -> ToolResult:
    return {k: v[:limit] if isinstance(v, list) else v for k, v in result.items()}


async def _search_inventory(api: SupportApiClient, args: Dict[str, Any], limit: int) -> ToolResult:
    query = _arg(args, "query")
    if not query:
        return {"error": "query is required"}
    return await api.search_inventory(query)


async def _check_product_availability(api: SupportApiClient, args: Dict[str, Any], limit: int) -> ToolResult:
    name = _arg(args, "product_name")
    if not name:
        return {"error": "product_name is required"}
    return await api.product_availability(name)


async def _find_similar_titles(api: SupportApiClient, args: Dict[str, Any], limit: int) -> ToolResult:
    query = _arg(args, "query")
    if not query:
        return {"error": "query is required"}
    result = await api.similar_titles(query, limit=limit)
    return result or {"message": f"No similar titles found for '{query}'."}


async def _get_recommendations(api: SupportApiClient, args: Dict[str, Any], limit: int) -> ToolResult:
    result = await api.recommendations()
    return result or {"message": "No new arrivals right now."}


async def _search_posts(api: SupportApiClient, args: Dict[str, Any], limit: int) -> ToolResult:
    query = _arg(args, "query")
    if not query:
        return {"error": "query is required"}
    return await api.search_posts(query)


async def _find_ebook(api: SupportApiClient, args: Dict[str, Any], limit: int) -> ToolResult:
    title = _arg(args, "title")
    if not title:
        return {"error": "title is required"}
    return await api.find_ebook(title)


TOOL_HANDLERS: Dict[ToolName, ToolHandler] = {
    ToolName.SEARCH_INVENTORY: _search_inventory,
    ToolName.CHECK_PRODUCT_AVAILABILITY: _check_product_availability,
    ToolName.FIND_SIMILAR_TITLES: _find_similar_titles,
    ToolName.GET_RECOMMENDATIONS: _get_recommendations,
    ToolName.SEARCH_POSTS: _search_posts,
    ToolName.FIND_EBOOK: _find_ebook,
}

# (description, {parameter: description}, required parameters)
_TOOL_SPECS: Dict[ToolName, tuple] = {
    ToolName.SEARCH_INVENTORY: (
        "Search active products and e-books by name or title (case-insensitive, partial match).",
        {"query": "Product name, book title or keyword"},
        ["query"],
    ),
    ToolName.CHECK_PRODUCT_AVAILABILITY: (
        "Check stock for a product by name. Returns matching products with stock_quantity and in_stock.",
        {"product_name": "Name of the product"},
        ["product_name"],
    ),
    ToolName.FIND_SIMILAR_TITLES: (
        "Find books and e-books whose title or author resembles the query.",
        {"query": "Title, partial title or author"},
        ["query"],
    ),
    ToolName.GET_RECOMMENDATIONS: (
        "List the newest e-books and products.",
        {},
        [],
    ),
    ToolName.SEARCH_POSTS: (
        "Search blog posts by title.",
        {"query": "Topic or title words"},
        ["query"],
    ),
    ToolName.FIND_EBOOK: (
        "Look up an e-book by title.",
        {"title": "E-book title"},
        ["title"],
    ),
}


def tool_declarations() -> List[Dict[str, Any]]:
    """OpenAI `tools=` entries, one per registered handler."""
    declarations = []
    for name in TOOL_HANDLERS:
        description, params, required = _TOOL_SPECS[name]
        declarations.append({
            "type": "function",
            "function": {
                "name": name.value,
                "description": description,
                "parameters": {
                    "type": "object",
                    "properties": {p: {"type": "string", "description": d} for p, d in params.items()},
                    "required": required,
                },
            },
        })
    return declarations


async def execute_tool(api: SupportApiClient, name: str, args: Dict[str, Any], limit: int = 6) -> ToolResult:
    """
    Run one tool call.

    Unknown names and backend error responses come back as `{error}`;
    `SupportApiError` without a status code (transport failure) propagates.
    """
    try:
        tool = ToolName(name)
    except ValueError:
        logger.warning(f"Model requested unknown tool: {name}")
        return {"error": f"Unknown tool: {name}"}

    start = time.time()
    ok = True
    try:
        result = await TOOL_HANDLERS[tool](api, args or {}, limit)
        return _cap(result, limit)
    except SupportApiError as e:
        ok = False
        if e.status_code is None:
            raise
        logger.warning(f"Tool {name} got HTTP {e.status_code}: {e.detail}")
        return {"error": e.detail}
    finally:
        events.log_tool_call(tool.value, args or {}, (time.time() - start) * 1000, ok)
