"""
Pydantic models for the storefront API requests and responses.

Request fields are optional at the schema level so missing values produce the
storefront's own 400 `{"error": ...}` body instead of a validation 422.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any, List


class StoredMessage(BaseModel):
    """A persisted chat row as returned to the chat client."""
    id: Any
    role: str
    message: str
    created_at: Optional[str] = None
    session_token: Optional[str] = None
    client_message_id: Optional[str] = None


class SessionHistoryResponse(BaseModel):
    messages: List[StoredMessage] = Field(default_factory=list)


class SessionOpenRequest(BaseModel):
    session_token: Optional[str] = None


class PostMessageRequest(BaseModel):
    """Body of POST /api/customer-support/messages."""
    model_config = ConfigDict(populate_by_name=True)

    session_token: Optional[str] = None
    role: Optional[str] = None
    message: Optional[str] = None
    created_at: Optional[str] = None
    client_message_id: Optional[str] = Field(default=None, alias="clientMessageId")


class AssociateRequest(BaseModel):
    session_token: Optional[str] = None
    user_id: Optional[str] = None


class AssociateResponse(BaseModel):
    ok: bool = True
    canonical_token: str


class OkResponse(BaseModel):
    ok: bool = True
    duplicate: Optional[bool] = None


class QueryRequest(BaseModel):
    """Free-text lookup body shared by the catalog endpoints."""
    query: Optional[str] = None
    limit: Optional[int] = None


class AvailabilityRequest(BaseModel):
    product_name: Optional[str] = None


class EbookSearchRequest(BaseModel):
    title: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    config: Dict[str, Any] = Field(default_factory=dict)
