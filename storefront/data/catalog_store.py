"""
Supabase REST lookups over the catalog tables used by the support chat.

Tables (Supabase):
  products   id, name, description, price, category ("computers" | "books"),
             stock_quantity, is_active, created_at
  ebooks     id, title, author, price, is_free, created_at
  posts      id, title, content, image_url, created_at

All lookups are read-only, case-insensitive partial matches, capped in size.
Failures are logged and degrade to empty results so a broken table never
takes the chat down.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from storefront.utils.logger import get_logger
from storefront.utils.supabase_client import SupabaseClient, SupabaseError, ilike_pattern

logger = get_logger("data.catalog_store")

PRODUCT_COLUMNS = "id,name,price,category,stock_quantity"
EBOOK_COLUMNS = "id,title,author,price,is_free"
POST_COLUMNS = "id,title,content,created_at"
POST_EXCERPT_CHARS = 240


class CatalogStore:
    """Search the products, ebooks and posts tables via the REST API."""

    def __init__(self, client: SupabaseClient, search_limit: int = 10):
        self.client = client
        self.search_limit = search_limit

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def search_inventory(self, query: str) -> Dict[str, List[Dict[str, Any]]]:
        """Active products by name and ebooks by title. Empty lists are omitted."""
        products = self._safe(lambda: self.client.select(
            "products",
            filters={"name": ilike_pattern(query), "is_active": True},
            select=PRODUCT_COLUMNS,
            limit=self.search_limit,
        ), "products search")
        ebooks = self._safe(lambda: self.client.select(
            "ebooks",
            filters={"title": ilike_pattern(query)},
            select=EBOOK_COLUMNS,
            limit=self.search_limit,
        ), "ebooks search")
        return _compact(products=products, ebooks=ebooks)

    def similar_titles(self, query: str, limit: int = 6) -> Dict[str, List[Dict[str, Any]]]:
        """Fuzzy title/author match across ebooks and book products."""
        term = ilike_pattern(query)[len("ilike."):]
        ebooks = self._safe(lambda: self.client.select(
            "ebooks",
            select=EBOOK_COLUMNS,
            or_filter=f"title.ilike.{term},author.ilike.{term}",
            limit=limit,
        ), "similar ebooks")
        books = self._safe(lambda: self.client.select(
            "products",
            filters={"category": "books", "name": ilike_pattern(query), "is_active": True},
            select=PRODUCT_COLUMNS,
            limit=limit,
        ), "similar books")
        return _compact(ebooks=ebooks, products=books)

    def recommendations(self, limit: int = 6) -> Dict[str, List[Dict[str, Any]]]:
        """New arrivals: most recent ebooks and active products."""
        new_ebooks = self._safe(lambda: self.client.select(
            "ebooks",
            select=EBOOK_COLUMNS + ",created_at",
            order="created_at.desc",
            limit=limit,
        ), "new ebooks")
        new_products = self._safe(lambda: self.client.select(
            "products",
            filters={"is_active": True},
            select=PRODUCT_COLUMNS + ",created_at",
            order="created_at.desc",
            limit=limit,
        ), "new products")
        return _compact(newEbooks=new_ebooks, newProducts=new_products)

    def product_availability(self, product_name: str, limit: int = 6) -> List[Dict[str, Any]]:
        """Active products matching a name, each flagged with `in_stock`."""
        rows = self._safe(lambda: self.client.select(
            "products",
            filters={"name": ilike_pattern(product_name), "is_active": True},
            select=PRODUCT_COLUMNS,
            limit=limit,
        ), "availability")
        for row in rows:
            row["in_stock"] = (row.get("stock_quantity") or 0) > 0
        return rows

    def search_posts(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        """Blog posts whose title matches, with content trimmed to an excerpt."""
        rows = self._safe(lambda: self.client.select(
            "posts",
            filters={"title": ilike_pattern(query)},
            select=POST_COLUMNS,
            order="created_at.desc",
            limit=limit,
        ), "posts search")
        for row in rows:
            content = row.pop("content", "") or ""
            row["excerpt"] = content[:POST_EXCERPT_CHARS] + ("..." if len(content) > POST_EXCERPT_CHARS else "")
        return rows

    def find_ebook(self, title: str, limit: int = 5) -> List[Dict[str, Any]]:
        """Ebooks whose title matches."""
        return self._safe(lambda: self.client.select(
            "ebooks",
            filters={"title": ilike_pattern(title)},
            select=EBOOK_COLUMNS,
            limit=limit,
        ), "ebook lookup")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _safe(fetch: Callable[[], List[Dict[str, Any]]], what: str) -> List[Dict[str, Any]]:
        try:
            return fetch() or []
        except SupabaseError as e:
            logger.error(f"Catalog {what} failed: {e}")
            return []


def _compact(**lists: Optional[List[Dict[str, Any]]]) -> Dict[str, List[Dict[str, Any]]]:
    return {k: v for k, v in lists.items() if v}
