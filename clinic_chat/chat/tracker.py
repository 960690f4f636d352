"""Read/unread bookkeeping, scoped by the reader's role."""

from datetime import datetime
from typing import Optional

from clinic_chat.chat.entities import Visibility
from clinic_chat.chat.errors import Forbidden, NotFound
from clinic_chat.chat.ports import ConversationRepository, MessageRepository
from clinic_chat.chat.types import Role, sender_type_for


def visibility_for(role: Role, account_id: int, tenant_id: Optional[int], patient_id: Optional[int] = None) -> Visibility:
    """Conversations a principal can list; PATIENT callers pass their resolved patient id."""
    if role is Role.PATIENT:
        return Visibility(patient_id=patient_id) if patient_id is not None else Visibility()
    if tenant_id is None:
        return Visibility()
    if role is Role.DOCTOR:
        return Visibility(tenant_id=tenant_id, doctor_account_id=account_id)
    return Visibility(tenant_id=tenant_id)


class ReadTracker:
    def __init__(
        self,
        conversations: ConversationRepository,
        messages: MessageRepository,
        clock=datetime.utcnow,
    ) -> None:
        self._conversations = conversations
        self._messages = messages
        self._clock = clock

    def mark_read(self, conversation_id: int, account_id: int, role: Role, tenant_id: Optional[int]) -> int:
        """Marks the other side's messages as read. Returns how many changed; 0 when none."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise NotFound('Conversation not found')
        if tenant_id is not None and conversation.tenant_id != tenant_id:
            raise Forbidden('Conversation belongs to another clinic')

        return self._messages.mark_read(conversation_id, account_id, sender_type_for(role), self._clock())

    def unread_count(
        self, tenant_id: Optional[int], role: Role, account_id: int, patient_id: Optional[int] = None
    ) -> int:
        visibility = visibility_for(role, account_id, tenant_id, patient_id)
        if visibility.is_empty:
            return 0
        conversation_ids = self._conversations.visible_ids(visibility)
        if not conversation_ids:
            return 0
        return self._messages.count_unread(conversation_ids, account_id, sender_type_for(role))
