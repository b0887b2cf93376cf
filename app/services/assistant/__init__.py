from .chat_storage import ChatStorageService
from .session_manager import ChatSessionBusyError, ChatSessionManager, SendResult
from .session_store import ChatSessionStore
from .types import ChatLimits, ChatMessage, ChatSession

__all__ = [
    "ChatLimits",
    "ChatMessage",
    "ChatSession",
    "ChatSessionBusyError",
    "ChatSessionManager",
    "ChatSessionStore",
    "ChatStorageService",
    "SendResult",
]
