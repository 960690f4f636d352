"""Conversation payloads with participant display data."""

from typing import List, Optional, Sequence

from clinic_chat.chat.entities import Conversation
from clinic_chat.chat.ports import AccountRepository, MessageRepository, PatientRepository
from clinic_chat.chat.types import Principal


class ConversationViews:
    def __init__(
        self,
        patients: PatientRepository,
        accounts: AccountRepository,
        messages: MessageRepository,
    ) -> None:
        self._patients = patients
        self._accounts = accounts
        self._messages = messages

    def describe(self, conversation: Conversation, reader: Optional[Principal] = None) -> dict:
        return self.describe_many([conversation], reader)[0]

    def describe_many(
        self, conversations: Sequence[Conversation], reader: Optional[Principal] = None
    ) -> List[dict]:
        unread = {}
        if reader is not None and conversations:
            unread = self._messages.unread_by_conversation(
                [c.id for c in conversations], reader.account_id, reader.sender_type
            )

        views = []
        for conversation in conversations:
            data = conversation.to_dict()
            data['patient'] = self._patient_data(conversation.patient_id)
            data['doctor'] = self._doctor_data(conversation.doctor_account_id)
            data['unread_count'] = unread.get(conversation.id, 0)
            views.append(data)
        return views

    def _patient_data(self, patient_id):
        if patient_id is None:
            return None
        patient = self._patients.get(patient_id)
        return patient.to_contact() if patient else None

    def _doctor_data(self, account_id):
        if account_id is None:
            return None
        doctor = self._accounts.get(account_id)
        return doctor.to_contact() if doctor else None
