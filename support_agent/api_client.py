"""
Async HTTP client for the storefront support backend.

Every call raises `SupportApiError` on failure; callers decide from
`error.retryable` whether a retry can help.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import httpx

from storefront.utils.logger import get_logger

logger = get_logger("support_agent.api_client")

SESSIONS_PATH = "/api/customer-support/sessions"
MESSAGES_PATH = "/api/customer-support/messages"
ASSOCIATE_PATH = "/api/customer-support/associate"

RETRYABLE_STATUS = {408, 425, 429}


class SupportApiError(Exception):
    """
    A failed backend call.

    `status_code` is None for transport failures (offline, DNS, timeout)
    and for 2xx responses whose body is not a JSON object.
    """

    def __init__(self, status_code: Optional[int], detail: str):
        super().__init__(f"[{status_code if status_code is not None else 'network'}] {detail}")
        self.status_code = status_code
        self.detail = detail

    @property
    def retryable(self) -> bool:
        """Transport failures, redirects (captive portals), 408/425/429 and 5xx."""
        if self.status_code is None:
            return True
        return (
            self.status_code < 400
            or self.status_code >= 500
            or self.status_code in RETRYABLE_STATUS
        )


class SupportApiClient:
    def __init__(self, base_url: str, timeout: float = 15.0, client: Optional[httpx.AsyncClient] = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise SupportApiError(None, f"{method} {path}: {e.__class__.__name__}: {e}") from e

        if not response.is_success:
            try:
                body = response.json()
                detail = body.get("error") if isinstance(body, dict) else None
            except ValueError:
                detail = None
            raise SupportApiError(response.status_code, detail or response.text or response.reason_phrase)

        if not response.content:
            return {}
        try:
            data = response.json()
        except ValueError as e:
            # e.g. a captive portal or proxy answering with an HTML page
            raise SupportApiError(None, f"{method} {path}: response is not JSON") from e
        if not isinstance(data, dict):
            raise SupportApiError(None, f"{method} {path}: expected a JSON object, got {type(data).__name__}")
        return data

    # Session store

    async def fetch_history(self, session_token: str) -> List[Dict[str, Any]]:
        data = await self._request("GET", SESSIONS_PATH, params={"session_token": session_token})
        return data.get("messages") or []

    async def post_message(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", MESSAGES_PATH, json=payload)

    async def delete_messages(self, session_token: str) -> None:
        await self._request("DELETE", MESSAGES_PATH, params={"session_token": session_token})

    async def associate(self, session_token: str, user_id: str) -> Optional[str]:
        data = await self._request("POST", ASSOCIATE_PATH, json={"session_token": session_token, "user_id": user_id})
        return data.get("canonical_token")

    # Catalog lookups

    async def search_inventory(self, query: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/search-inventory", json={"query": query})

    async def similar_titles(self, query: str, limit: int = 6) -> Dict[str, Any]:
        return await self._request("POST", "/api/similar-titles", json={"query": query, "limit": limit})

    async def recommendations(self) -> Dict[str, Any]:
        return await self._request("GET", "/api/recommendations")

    async def product_availability(self, product_name: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/product-availability", json={"product_name": product_name})

    async def search_posts(self, query: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/posts/search", json={"query": query})

    async def find_ebook(self, title: str) -> Dict[str, Any]:
        return await self._request("POST", "/api/ebooks/search", json={"title": title})
