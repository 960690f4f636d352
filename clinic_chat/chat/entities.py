"""
Plain records exchanged between the chat core and its repositories.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from clinic_chat.chat.errors import InvalidConversationParameters
from clinic_chat.chat.types import ConversationType, PatientStatus, Role, SenderType

T = TypeVar("T")


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Account:
    """A login account owned by the user-management service."""
    id: int
    role: Role
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    tenant_id: Optional[int] = None
    specialization: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool = True

    def to_contact(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'specialization': self.specialization,
            'avatar': self.avatar,
        }


@dataclass
class Patient:
    id: Optional[int]
    tenant_id: int
    name: str
    phone: str = ""
    email: Optional[str] = None
    status: PatientStatus = PatientStatus.REGISTERED
    avatar: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_guest(self) -> bool:
        return self.status is PatientStatus.GUEST

    def to_contact(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'avatar': self.avatar,
            'status': self.status.value,
        }


@dataclass(frozen=True)
class ParticipantKey:
    """The participant fields that identify a conversation within a clinic."""
    patient_id: Optional[int] = None
    doctor_account_id: Optional[int] = None

    def render(self, conversation_type: ConversationType) -> str:
        if conversation_type is ConversationType.CLINIC_DOCTOR:
            self._require(self.doctor_account_id, 'doctor_id')
            return f"clinic_doctor:{self.doctor_account_id}"
        if conversation_type is ConversationType.PATIENT_CLINIC:
            self._require(self.patient_id, 'patient_id')
            return f"patient_clinic:{self.patient_id}"
        self._require(self.patient_id, 'patient_id')
        self._require(self.doctor_account_id, 'doctor_id')
        return f"patient_doctor:{self.patient_id}:{self.doctor_account_id}"

    @staticmethod
    def _require(value, name):
        if value is None:
            raise InvalidConversationParameters(f"{name} is required for this conversation type")


@dataclass
class Conversation:
    id: Optional[int]
    tenant_id: int
    type: ConversationType
    patient_id: Optional[int] = None
    doctor_account_id: Optional[int] = None
    created_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None
    last_message_text: Optional[str] = None

    @property
    def key(self) -> ParticipantKey:
        return ParticipantKey(patient_id=self.patient_id, doctor_account_id=self.doctor_account_id)

    @property
    def participant_key(self) -> str:
        return self.key.render(self.type)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'clinic_id': self.tenant_id,
            'type': self.type.value,
            'patient_id': self.patient_id,
            'doctor_id': self.doctor_account_id,
            'created_at': _iso(self.created_at),
            'last_message_at': _iso(self.last_message_at),
            'last_message_text': self.last_message_text,
        }


@dataclass
class Message:
    id: Optional[int]
    conversation_id: int
    sender_account_id: int
    sender_type: SenderType
    content: str = ""
    image_url: Optional[str] = None
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def redact(self, at: datetime) -> None:
        self.content = ""
        self.image_url = None
        self.deleted_at = at

    def preview(self) -> str:
        if self.content:
            return self.content[:200]
        return "[image]" if self.image_url else ""

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'conversation_id': self.conversation_id,
            'sender_id': self.sender_account_id,
            'sender_type': self.sender_type.value,
            'content': self.content,
            'image_url': self.image_url,
            'is_read': self.is_read,
            'read_at': _iso(self.read_at),
            'is_deleted': self.is_deleted,
            'created_at': _iso(self.created_at),
        }


@dataclass(frozen=True)
class Visibility:
    """Which conversations a principal may see. An empty filter sees nothing."""
    tenant_id: Optional[int] = None
    patient_id: Optional[int] = None
    doctor_account_id: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return self.tenant_id is None and self.patient_id is None


@dataclass
class Page(Generic[T]):
    items: List[T] = field(default_factory=list)
    page: int = 1
    limit: int = 50
    total: int = 0

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict:
        return {
            'page': self.page,
            'per_page': self.limit,
            'total': self.total,
            'pages': self.pages,
            'has_next': self.has_next,
            'has_prev': self.has_prev,
        }
