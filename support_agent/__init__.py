"""
Sm@rtz customer-support chat client.

Session history with local and remote mirrors, a pending-delivery queue,
the message dispatcher with its tool loop, and a typewriter renderer.
"""
from support_agent.chat import SupportChat
from support_agent.dispatcher import DispatchResult, MessageDispatcher
from support_agent.models import Attachment, ChatState, DeliveryStatus, Message, PendingItem, Sender
from support_agent.storage import JsonFileSessionStore, MemorySessionStore, RedisSessionStore, SessionStore

__all__ = [
    "SupportChat",
    "MessageDispatcher",
    "DispatchResult",
    "Attachment",
    "ChatState",
    "DeliveryStatus",
    "Message",
    "PendingItem",
    "Sender",
    "SessionStore",
    "MemorySessionStore",
    "JsonFileSessionStore",
    "RedisSessionStore",
]
