import httpx
from typing import Dict, Any, List, Optional, Sequence, Tuple, Union
from storefront.utils.logger import get_logger

logger = get_logger("utils.supabase_client")

_OPERATORS = ("eq", "neq", "gt", "lt", "gte", "lte", "like", "ilike", "in", "is", "not")

FilterValue = Union[str, int, float, bool]


class SupabaseError(Exception):
    """Raised when a PostgREST call fails (transport error or non-2xx status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def ilike_pattern(term: str) -> str:
    """Case-insensitive partial-match pattern for PostgREST (`*` is the URL-safe wildcard)."""
    cleaned = term.replace("*", " ").replace(",", " ").replace("(", " ").replace(")", " ").strip()
    return f"ilike.*{cleaned}*"


class SupabaseClient:
    """
    Lightweight client for interacting with the Supabase REST API.
    """
    def __init__(self, url: str, key: str, client: Optional[httpx.Client] = None, timeout: float = 30.0):
        self.url = url
        self.key = key

        if not self.url or not self.key:
            logger.warning("SUPABASE_URL or SUPABASE_KEY not set in environment.")

        self.headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation"
        }
        self.client = client or httpx.Client(base_url=self.url, headers=self.headers, timeout=timeout)

    @staticmethod
    def _filter_params(filters: Optional[Dict[str, FilterValue]]) -> List[Tuple[str, str]]:
        params: List[Tuple[str, str]] = []
        for key, val in (filters or {}).items():
            if isinstance(val, bool):
                params.append((key, f"eq.{str(val).lower()}"))
            elif isinstance(val, str) and "." in val and val.split(".")[0] in _OPERATORS:
                params.append((key, val))
            else:
                params.append((key, f"eq.{val}"))
        return params

    def _request(self, method: str, table: str, params: Sequence[Tuple[str, str]], json: Any = None,
                 headers: Optional[Dict[str, str]] = None) -> Any:
        try:
            response = self.client.request(method, f"/rest/v1/{table}", params=list(params), json=json, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SupabaseError(f"{method} {table} failed: {e.response.text}", e.response.status_code) from e
        except httpx.HTTPError as e:
            raise SupabaseError(f"{method} {table} failed: {e}") from e

        if not response.content:
            return []
        return response.json()

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, FilterValue]] = None,
        select: str = "*",
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order: Optional[str] = None,
        or_filter: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query a Supabase table.

        `or_filter` is a raw PostgREST disjunction such as
        ``title.ilike.*x*,author.ilike.*x*``.
        """
        params = [("select", select)]
        params.extend(self._filter_params(filters))
        if or_filter:
            params.append(("or", f"({or_filter})"))
        if order:
            params.append(("order", order))
        if limit:
            params.append(("limit", str(limit)))
        if offset:
            params.append(("offset", str(offset)))
        return self._request("GET", table, params)

    def insert(self, table: str, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Insert rows and return the stored representation."""
        return self._request("POST", table, [], json=rows)

    def upsert(self, table: str, rows: List[Dict[str, Any]], on_conflict: str) -> List[Dict[str, Any]]:
        """Insert or merge rows on the given unique column."""
        return self._request(
            "POST", table, [("on_conflict", on_conflict)], json=rows,
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
        )

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, FilterValue]) -> List[Dict[str, Any]]:
        """Update rows matching filters. Filters are mandatory so a bare PATCH never rewrites a table."""
        if not filters:
            raise ValueError("update requires at least one filter")
        return self._request("PATCH", table, self._filter_params(filters), json=values)

    def delete(self, table: str, filters: Dict[str, FilterValue]) -> List[Dict[str, Any]]:
        """Delete rows matching filters."""
        if not filters:
            raise ValueError("delete requires at least one filter")
        return self._request("DELETE", table, self._filter_params(filters))


_client: Optional[SupabaseClient] = None


def get_supabase() -> SupabaseClient:
    """Lazily build the shared client from configuration."""
    global _client
    if _client is None:
        from storefront.core.config import get_config
        config = get_config()
        _client = SupabaseClient(config.supabase_url, config.supabase_key)
    return _client
