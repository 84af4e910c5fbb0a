"""
Chat data model: messages, attachments, pending deliveries, chat state.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


class DeliveryStatus(str, Enum):
    """Remote persistence state shown next to a message."""
    SENT = "sent"
    PENDING = "pending"    # queued locally, spinner in the UI
    FAILED = "failed"      # rejected by the server, will not be retried


class ChatState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    STREAMING = "streaming"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return _now()


@dataclass
class Attachment:
    name: str
    type: str
    url: str

    @classmethod
    def from_file(cls, name: str, content_type: str, url: str, size_bytes: int) -> "Attachment":
        """Validate a user upload before it is attached to a message."""
        if size_bytes > MAX_ATTACHMENT_BYTES:
            raise ValueError("File size must be less than 5MB")
        return cls(name=name, type=content_type, url=url)

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "type": self.type, "url": self.url}


@dataclass
class Message:
    """One line of the conversation."""
    text: str
    sender: Sender
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=_now)
    attachment: Optional[Attachment] = None
    status: DeliveryStatus = DeliveryStatus.SENT

    @property
    def role(self) -> str:
        return self.sender.value

    def to_dict(self) -> Dict[str, Any]:
        """Local-storage form."""
        data: Dict[str, Any] = {
            "id": self.id,
            "text": self.text,
            "sender": self.sender.value,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
        }
        if self.attachment:
            data["attachment"] = self.attachment.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        attachment = data.get("attachment")
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            text=data.get("text", ""),
            sender=Sender(data.get("sender", Sender.BOT.value)),
            timestamp=_parse_timestamp(data.get("timestamp")),
            attachment=Attachment(**attachment) if attachment else None,
            status=DeliveryStatus(data.get("status", DeliveryStatus.SENT.value)),
        )

    @classmethod
    def from_remote(cls, row: Dict[str, Any]) -> "Message":
        """Build from a `{id, role, message, created_at}` row of the session store."""
        return cls(
            id=str(row.get("client_message_id") or row.get("id")),
            text=row.get("message", ""),
            sender=Sender.USER if row.get("role") == Sender.USER.value else Sender.BOT,
            timestamp=_parse_timestamp(row.get("created_at")),
        )


@dataclass
class PendingItem:
    """An outbound message payload that has not been confirmed by the server."""
    session_token: str
    role: str
    message: str
    created_at: str
    client_message_id: str

    def to_payload(self) -> Dict[str, str]:
        """Wire form for POST /api/customer-support/messages."""
        return {
            "session_token": self.session_token,
            "role": self.role,
            "message": self.message,
            "created_at": self.created_at,
            "clientMessageId": self.client_message_id,
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "PendingItem":
        return cls(
            session_token=data["session_token"],
            role=data["role"],
            message=data["message"],
            created_at=data.get("created_at") or _now().isoformat(),
            client_message_id=data["clientMessageId"],
        )

    @classmethod
    def for_message(cls, session_token: str, message: Message) -> "PendingItem":
        return cls(
            session_token=session_token,
            role=message.role,
            message=message.text,
            created_at=message.timestamp.isoformat(),
            client_message_id=message.id,
        )
