from app.models.base import Base
from app.models.conversation import Conversation, ConversationMember
from app.models.message import Message, MessageReceipt
from app.models.notification import Notification

__all__ = [
    "Base",
    "Conversation",
    "ConversationMember",
    "Message",
    "MessageReceipt",
    "Notification",
]
