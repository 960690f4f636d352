from clinic_chat.chat.service import ChatService
from clinic_chat.chat.types import Principal, Role, scope_for

__all__ = ["ChatService", "Principal", "Role", "scope_for"]
