"""
Repository ports consumed by the chat core.

Implementations: clinic_chat/persistence/sqlalchemy_repositories.py, and the
in-memory fakes under tests/.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from clinic_chat.chat.entities import Account, Conversation, Message, Page, Patient, Visibility
from clinic_chat.chat.types import ConversationType, PatientStatus, SenderType


class AccountRepository(ABC):
    @abstractmethod
    def get(self, account_id: int) -> Optional[Account]: ...

    @abstractmethod
    def list_doctors(self, tenant_id: int) -> List[Account]: ...


class PatientRepository(ABC):
    @abstractmethod
    def get(self, patient_id: int) -> Optional[Patient]: ...

    @abstractmethod
    def find_latest_by_contact(
        self, email: Optional[str], phone: Optional[str], tenant_id: Optional[int] = None
    ) -> Optional[Patient]:
        """Newest patient whose email or phone matches; ties go to the later insert."""

    @abstractmethod
    def list_by_status(self, tenant_id: int, status: PatientStatus) -> List[Patient]: ...


class PatientProfiles(ABC):
    """Patient registration, owned by the profile-management service."""

    @abstractmethod
    def find_or_create_patient(
        self, tenant_id: int, name: str, phone: str, email: Optional[str]
    ) -> Patient: ...


class ConversationRepository(ABC):
    @abstractmethod
    def get(self, conversation_id: int) -> Optional[Conversation]: ...

    @abstractmethod
    def find_by_key(
        self, tenant_id: int, conversation_type: ConversationType, participant_key: str
    ) -> Optional[Conversation]: ...

    @abstractmethod
    def add(self, conversation: Conversation) -> Conversation:
        """Insert; raises DuplicateRecord when the participant key is taken."""

    @abstractmethod
    def touch(self, conversation_id: int, at: datetime, preview: str) -> Conversation: ...

    @abstractmethod
    def list_visible(self, visibility: Visibility, page: int, limit: int) -> Page[Conversation]: ...

    @abstractmethod
    def visible_ids(self, visibility: Visibility) -> List[int]: ...

    @abstractmethod
    def list_for_tenant(self, tenant_id: int) -> List[Conversation]: ...


class MessageRepository(ABC):
    @abstractmethod
    def add(self, message: Message) -> Message: ...

    @abstractmethod
    def get(self, message_id: int) -> Optional[Message]: ...

    @abstractmethod
    def save(self, message: Message) -> Message: ...

    @abstractmethod
    def list_for_conversation(
        self, conversation_id: int, page: int, limit: int, before: Optional[datetime] = None
    ) -> Page[Message]:
        """Oldest first within the page; pages count back from the newest message."""

    @abstractmethod
    def mark_read(
        self, conversation_id: int, reader_account_id: int, reader_sender_type: SenderType, at: datetime
    ) -> int: ...

    @abstractmethod
    def unread_by_conversation(
        self, conversation_ids: Sequence[int], reader_account_id: int, reader_sender_type: SenderType
    ) -> Dict[int, int]: ...

    def count_unread(
        self, conversation_ids: Sequence[int], reader_account_id: int, reader_sender_type: SenderType
    ) -> int:
        counts = self.unread_by_conversation(conversation_ids, reader_account_id, reader_sender_type)
        return sum(counts.values())
