"""
FastAPI server for the Sm@rtz storefront support backend.

Owns the remote chat-session store and the catalog lookups the support bot's
tools call.

Usage:
    uvicorn storefront.api.server:app --reload --port 8000
"""
from functools import lru_cache

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from typing import Optional

from storefront.api.models import (
    AssociateRequest,
    AssociateResponse,
    AvailabilityRequest,
    EbookSearchRequest,
    HealthResponse,
    OkResponse,
    PostMessageRequest,
    QueryRequest,
    SessionHistoryResponse,
    SessionOpenRequest,
    StoredMessage,
)
from storefront.core.config import get_config
from storefront.data.catalog_store import CatalogStore
from storefront.data.chat_store import ChatStore
from storefront.utils.logger import get_logger
from storefront.utils.structured_logger import StructuredLogger
from storefront.utils.supabase_client import SupabaseError, get_supabase

logger = get_logger("api.server")
events = StructuredLogger("api")

app = FastAPI(
    title="Sm@rtz Support API",
    description="Customer-support chat persistence and catalog lookups",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Dependencies

@lru_cache()
def get_chat_store() -> ChatStore:
    """Provides the shared ChatStore."""
    logger.info("Initializing ChatStore...")
    return ChatStore(get_supabase(), max_history=get_config().server_max_history)


@lru_cache()
def get_catalog_store() -> CatalogStore:
    """Provides the shared CatalogStore."""
    logger.info("Initializing CatalogStore...")
    return CatalogStore(get_supabase(), search_limit=get_config().search_limit)


def _error(detail: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": detail}, status_code=status_code)


# Health

@app.get("/health", response_model=HealthResponse)
async def health():
    config = get_config()
    return HealthResponse(
        status="online",
        service="Sm@rtz Support API",
        version="1.0.0",
        config={
            "server_max_history": config.server_max_history,
            "search_limit": config.search_limit,
        },
    )


# Customer-support session store

@app.get("/api/customer-support/sessions", response_model=SessionHistoryResponse)
async def get_session_history(
    session_token: Optional[str] = Query(default=None),
    store: ChatStore = Depends(get_chat_store),
):
    """Stored conversation for a session token, oldest first."""
    if not session_token:
        return _error("missing session_token", 400)
    try:
        rows = store.list_messages(session_token)
    except SupabaseError as e:
        logger.error(f"Fetch sessions failed for {session_token}: {e}")
        return _error("db error", 500)
    return SessionHistoryResponse(messages=[StoredMessage(**r) for r in rows])


@app.post("/api/customer-support/sessions", response_model=OkResponse)
async def open_session(request: SessionOpenRequest):
    """Session rows are created lazily by the first message; this only validates."""
    if not request.session_token:
        return _error("missing session_token", 400)
    return OkResponse()


@app.post("/api/customer-support/messages", response_model=OkResponse)
async def post_message(request: PostMessageRequest, store: ChatStore = Depends(get_chat_store)):
    """Persist one chat message. Replays with a known clientMessageId are acknowledged without a new row."""
    if not request.session_token or not request.role or request.message is None:
        return _error("missing fields", 400)

    events.log_request("/api/customer-support/messages", params={
        "session_token": request.session_token,
        "role": request.role,
        "client_message_id": request.client_message_id,
    })
    try:
        inserted = store.insert_message(
            session_token=request.session_token,
            role=request.role,
            message=request.message,
            created_at=request.created_at,
            client_message_id=request.client_message_id,
        )
    except SupabaseError as e:
        logger.error(f"Insert message failed: {e}")
        return _error("db error", 500)
    return OkResponse(duplicate=None if inserted else True)


@app.delete("/api/customer-support/messages", response_model=OkResponse)
async def delete_messages(
    session_token: Optional[str] = Query(default=None),
    store: ChatStore = Depends(get_chat_store),
):
    if not session_token:
        return _error("missing session_token", 400)
    try:
        store.delete_messages(session_token)
    except SupabaseError as e:
        logger.error(f"Delete messages failed for {session_token}: {e}")
        return _error("db error", 500)
    return OkResponse()


@app.post("/api/customer-support/associate", response_model=AssociateResponse)
async def associate_session(request: AssociateRequest, store: ChatStore = Depends(get_chat_store)):
    """Reconcile an anonymous session with a signed-in user."""
    if not request.session_token or not request.user_id:
        return _error("missing fields", 400)
    try:
        canonical = store.associate(request.session_token, request.user_id)
    except SupabaseError as e:
        logger.error(f"Associate failed for {request.session_token}: {e}")
        return _error("db error", 500)
    return AssociateResponse(canonical_token=canonical)


# Catalog lookups used by the support bot's tools

@app.post("/api/search-inventory")
async def search_inventory(request: QueryRequest, catalog: CatalogStore = Depends(get_catalog_store)):
    if not request.query or not request.query.strip():
        return _error("Missing or invalid query", 400)
    query = request.query.strip()
    payload = catalog.search_inventory(query)
    if not payload:
        return {"message": f"No matches found for '{query}'."}
    return payload


@app.post("/api/similar-titles")
async def similar_titles(request: QueryRequest, catalog: CatalogStore = Depends(get_catalog_store)):
    if not request.query or not request.query.strip():
        return _error("Missing query", 400)
    return catalog.similar_titles(request.query.strip(), limit=request.limit or 6)


@app.get("/api/recommendations")
async def recommendations(catalog: CatalogStore = Depends(get_catalog_store)):
    return catalog.recommendations()


@app.post("/api/product-availability")
async def product_availability(request: AvailabilityRequest, catalog: CatalogStore = Depends(get_catalog_store)):
    if not request.product_name or not request.product_name.strip():
        return _error("Missing product_name", 400)
    name = request.product_name.strip()
    products = catalog.product_availability(name)
    if not products:
        return {"message": f"No product named '{name}' is currently listed."}
    return {"products": products}


@app.post("/api/posts/search")
async def search_posts(request: QueryRequest, catalog: CatalogStore = Depends(get_catalog_store)):
    if not request.query or not request.query.strip():
        return _error("Missing query", 400)
    query = request.query.strip()
    posts = catalog.search_posts(query, limit=request.limit or 5)
    if not posts:
        return {"message": f"No posts found about '{query}'."}
    return {"posts": posts}


@app.post("/api/ebooks/search")
async def search_ebooks(request: EbookSearchRequest, catalog: CatalogStore = Depends(get_catalog_store)):
    if not request.title or not request.title.strip():
        return _error("Missing title", 400)
    title = request.title.strip()
    ebooks = catalog.find_ebook(title)
    if not ebooks:
        return {"message": f"No e-book titled '{title}' was found."}
    return {"ebooks": ebooks}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
