"""
Message Pipeline: the only write path for chat messages.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from clinic_chat.chat.access import AccessGate, AccessTarget
from clinic_chat.chat.entities import Conversation, Message, Patient
from clinic_chat.chat.errors import Forbidden, NotFound, ValidationFailed
from clinic_chat.chat.ports import ConversationRepository, MessageRepository, PatientRepository
from clinic_chat.chat.types import Action, Principal, SenderType
from clinic_chat.chat.views import ConversationViews

logger = logging.getLogger(__name__)


@dataclass
class Delivery:
    message: Message
    conversation: dict

    def to_dict(self) -> dict:
        return {'message': self.message.to_dict(), 'conversation': self.conversation}


class MessagePipeline:
    def __init__(
        self,
        conversations: ConversationRepository,
        messages: MessageRepository,
        patients: PatientRepository,
        gate: AccessGate,
        views: ConversationViews,
        max_length: int = 5000,
        clock=datetime.utcnow,
    ) -> None:
        self._conversations = conversations
        self._messages = messages
        self._patients = patients
        self._gate = gate
        self._views = views
        self._max_length = max_length
        self._clock = clock

    def send(
        self,
        conversation: Conversation,
        principal: Principal,
        content: Optional[str],
        image_url: Optional[str] = None,
        sender_type: Optional[SenderType] = None,
        acting_patient: Optional[Patient] = None,
    ) -> Delivery:
        content = self.validate_payload(content, image_url)
        image_url = (image_url or '').strip() or None

        expected = principal.sender_type
        if sender_type is not None and sender_type is not expected:
            raise ValidationFailed(f"A {principal.role.value} account sends as '{expected.value}'")

        patient = self._patients.get(conversation.patient_id) if conversation.patient_id else None
        self._gate.enforce(
            principal, Action.SEND, AccessTarget.for_conversation(conversation, patient), acting_patient
        )

        now = self._clock()
        message = self._messages.add(Message(
            id=None,
            conversation_id=conversation.id,
            sender_account_id=principal.account_id,
            sender_type=expected,
            content=content,
            image_url=image_url,
            created_at=now,
        ))
        refreshed = self._conversations.touch(conversation.id, now, message.preview())

        logger.debug(f"Message {message.id} stored in conversation {conversation.id}")
        return Delivery(message=message, conversation=self._views.describe(refreshed, principal))

    def validate_payload(self, content: Optional[str], image_url: Optional[str]) -> str:
        """Trimmed content; raises when there is nothing to send or it is too long."""
        content = (content or '').strip()
        if not content and not (image_url or '').strip():
            raise ValidationFailed('Message content or image is required')
        if len(content) > self._max_length:
            raise ValidationFailed(f"Message content exceeds {self._max_length} characters")
        return content

    def delete(self, message_id: int, requester_account_id: int, tenant_id: Optional[int]) -> Message:
        """
        Redacts a message in place. Only the sender may do this, and
        only within the message's clinic; tenant_id None is an account not yet
        bound to a clinic.
        """
        message = self._messages.get(message_id)
        if message is None:
            raise NotFound('Message not found')

        conversation = self._conversations.get(message.conversation_id)
        if conversation is None:
            raise NotFound('Message not found')

        if message.sender_account_id != requester_account_id:
            raise Forbidden('You can only delete your own messages')
        if tenant_id is not None and conversation.tenant_id != tenant_id:
            raise Forbidden('You can only delete your own messages')

        if message.is_deleted:
            return message

        message.redact(self._clock())
        logger.info(f"Message {message.id} redacted by account {requester_account_id}")
        return self._messages.save(message)
