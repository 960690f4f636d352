"""
Chat service: one method per chat operation, composing identity resolution,
the access gate, the registry, the pipeline and the tracker.
"""

from datetime import datetime
from typing import Optional

from clinic_chat.chat.access import AccessGate, AccessTarget
from clinic_chat.chat.contacts import ContactDirectory
from clinic_chat.chat.entities import Message, Page
from clinic_chat.chat.errors import ClinicIdRequired, InvalidConversationParameters, NotFound
from clinic_chat.chat.identity import IdentityResolver
from clinic_chat.chat.pipeline import Delivery, MessagePipeline
from clinic_chat.chat.ports import (
    AccountRepository,
    ConversationRepository,
    MessageRepository,
    PatientProfiles,
    PatientRepository,
)
from clinic_chat.chat.registry import ConversationRegistry
from clinic_chat.chat.tracker import ReadTracker, visibility_for
from clinic_chat.chat.types import Action, Principal, Role
from clinic_chat.chat.views import ConversationViews


class ChatService:
    def __init__(
        self,
        accounts: AccountRepository,
        patients: PatientRepository,
        profiles: PatientProfiles,
        conversations: ConversationRepository,
        messages: MessageRepository,
        max_message_length: int = 5000,
        clock=datetime.utcnow,
    ) -> None:
        self._accounts = accounts
        self._patients = patients
        self._conversations = conversations
        self._messages = messages

        self.identity = IdentityResolver(patients, accounts)
        self.gate = AccessGate()
        self.views = ConversationViews(patients, accounts, messages)
        self.registry = ConversationRegistry(
            conversations, patients, accounts, profiles, self.identity, self.gate, clock=clock
        )
        self.pipeline = MessagePipeline(
            conversations, messages, patients, self.gate, self.views,
            max_length=max_message_length, clock=clock,
        )
        self.tracker = ReadTracker(conversations, messages, clock=clock)
        self.contacts = ContactDirectory(accounts, patients, conversations)

    # --- Queries ---

    def list_conversations(self, principal: Principal, page: int = 1, limit: int = 50) -> dict:
        patient = self.identity.resolve_for_principal(principal)
        visibility = visibility_for(
            principal.role, principal.account_id, principal.tenant_id, patient.id if patient else None
        )
        if visibility.is_empty:
            # New patient accounts have no Patient record yet, hence no conversations
            result = Page(items=[], page=page, limit=limit, total=0)
        else:
            result = self._conversations.list_visible(visibility, page, limit)

        return {
            'conversations': self.views.describe_many(result.items, principal),
            'pagination': result.pagination(),
        }

    def get_conversation(self, principal: Principal, conversation_id: int) -> dict:
        conversation, _ = self._authorized_conversation(principal, conversation_id, Action.READ)
        return self.views.describe(conversation, principal)

    def list_messages(
        self,
        principal: Principal,
        conversation_id: int,
        page: int = 1,
        limit: int = 50,
        before: Optional[datetime] = None,
    ) -> dict:
        self._authorized_conversation(principal, conversation_id, Action.READ)
        result = self._messages.list_for_conversation(conversation_id, page, limit, before=before)
        return {
            'messages': [message.to_dict() for message in result.items],
            'pagination': result.pagination(),
        }

    def unread_count(self, principal: Principal) -> int:
        patient = self.identity.resolve_for_principal(principal)
        return self.tracker.unread_count(
            principal.tenant_id, principal.role, principal.account_id, patient.id if patient else None
        )

    def available_contacts(self, principal: Principal) -> dict:
        return self.contacts.for_principal(principal)

    # --- Commands ---

    def send_message(
        self,
        principal: Principal,
        content: Optional[str],
        image_url: Optional[str] = None,
        conversation_id: Optional[int] = None,
        patient_id: Optional[int] = None,
        doctor_id: Optional[int] = None,
    ) -> Delivery:
        # Reject empty payloads before a conversation can be opened for them
        self.pipeline.validate_payload(content, image_url)

        acting_patient = None
        if conversation_id is not None:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise NotFound('Conversation not found')
            acting_patient = self.identity.resolve_for_principal(principal)
        elif principal.is_staff:
            if principal.tenant_id is None:
                raise ClinicIdRequired()
            if doctor_id is not None:
                conversation = self.registry.open_clinic_doctor(principal, doctor_id)
            elif patient_id is not None:
                conversation = self.registry.open_clinic_patient(principal, patient_id)
            else:
                raise InvalidConversationParameters()
        elif principal.role is Role.PATIENT:
            conversation, acting_patient = self.registry.open_for_patient(
                principal, patient_id=patient_id, doctor_account_id=doctor_id
            )
        else:
            # Doctors reply in existing conversations only
            raise InvalidConversationParameters()

        return self.pipeline.send(
            conversation, principal, content, image_url, acting_patient=acting_patient
        )

    def mark_read(self, principal: Principal, conversation_id: int) -> int:
        self._authorized_conversation(principal, conversation_id, Action.READ)
        return self.tracker.mark_read(
            conversation_id, principal.account_id, principal.role, principal.tenant_id
        )

    def delete_message(self, principal: Principal, message_id: int) -> Message:
        return self.pipeline.delete(message_id, principal.account_id, principal.tenant_id)

    def _authorized_conversation(self, principal: Principal, conversation_id: int, action: Action):
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise NotFound('Conversation not found')

        patient = self._patients.get(conversation.patient_id) if conversation.patient_id else None
        acting_patient = self.identity.resolve_for_principal(principal)
        self.gate.enforce(
            principal, action, AccessTarget.for_conversation(conversation, patient), acting_patient
        )
        return conversation, acting_patient
