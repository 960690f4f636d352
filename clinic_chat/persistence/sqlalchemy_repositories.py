"""
SQLAlchemy implementations of the chat repository ports.

Repositories flush but never commit; the request that uses them owns the
transaction.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import desc, false, func, or_
from sqlalchemy.exc import IntegrityError

from clinic_chat.chat.entities import (
    Account,
    Conversation as ConversationEntity,
    Message as MessageEntity,
    Page,
    Patient as PatientEntity,
    Visibility,
)
from clinic_chat.chat.errors import DuplicateRecord, NotFound
from clinic_chat.chat.ports import (
    AccountRepository,
    ConversationRepository,
    MessageRepository,
    PatientProfiles,
    PatientRepository,
)
from clinic_chat.chat.types import ConversationType, PatientStatus, Role, SenderType
from clinic_chat.models.chat_models import Conversation, Message
from clinic_chat.models.patient_models import Patient
from clinic_chat.models.user_models import User


def _page(pagination, items) -> Page:
    return Page(items=items, page=pagination.page, limit=pagination.per_page, total=pagination.total)


class SqlAccountRepository(AccountRepository):
    def __init__(self, session):
        self._session = session

    def get(self, account_id: int) -> Optional[Account]:
        user = self._session.get(User, account_id)
        return user.to_entity() if user else None

    def list_doctors(self, tenant_id: int) -> List[Account]:
        users = self._session.query(User).filter(
            User.clinic_id == tenant_id,
            User.role == Role.DOCTOR.value,
            User.is_active == True,
        ).order_by(User.name, User.id).all()
        return [user.to_entity() for user in users]


class SqlPatientRepository(PatientRepository):
    def __init__(self, session):
        self._session = session

    def get(self, patient_id: int) -> Optional[PatientEntity]:
        patient = self._session.get(Patient, patient_id)
        return patient.to_entity() if patient else None

    def find_latest_by_contact(
        self, email: Optional[str], phone: Optional[str], tenant_id: Optional[int] = None
    ) -> Optional[PatientEntity]:
        query = self._contact_query(email, phone, tenant_id)
        if query is None:
            return None
        patient = query.order_by(desc(Patient.created_at), desc(Patient.id)).first()
        return patient.to_entity() if patient else None

    def list_by_status(self, tenant_id: int, status: PatientStatus) -> List[PatientEntity]:
        patients = self._session.query(Patient).filter(
            Patient.clinic_id == tenant_id,
            Patient.status == status.value,
        ).order_by(Patient.name, Patient.id).all()
        return [patient.to_entity() for patient in patients]

    def _contact_query(self, email, phone, tenant_id):
        conditions = []
        if email:
            conditions.append(Patient.email == email)
        if phone:
            conditions.append(Patient.phone == phone)
        if not conditions:
            return None

        query = self._session.query(Patient).filter(or_(*conditions))
        if tenant_id is not None:
            query = query.filter(Patient.clinic_id == tenant_id)
        return query


class SqlPatientProfiles(PatientProfiles):
    """Minimal stand-in for the profile service's find-or-create."""

    def __init__(self, session, patients: SqlPatientRepository):
        self._session = session
        self._patients = patients

    def find_or_create_patient(
        self, tenant_id: int, name: str, phone: str, email: Optional[str]
    ) -> PatientEntity:
        existing = self._patients.find_latest_by_contact(email=email, phone=phone, tenant_id=tenant_id)
        if existing is not None:
            return existing

        patient = Patient(
            clinic_id=tenant_id,
            name=name,
            phone=phone or '',
            email=email,
            status=PatientStatus.REGISTERED.value,
            created_at=datetime.utcnow(),
        )
        self._session.add(patient)
        self._session.flush()
        return patient.to_entity()


class SqlConversationRepository(ConversationRepository):
    def __init__(self, session):
        self._session = session

    def get(self, conversation_id: int) -> Optional[ConversationEntity]:
        conversation = self._session.get(Conversation, conversation_id)
        return conversation.to_entity() if conversation else None

    def find_by_key(
        self, tenant_id: int, conversation_type: ConversationType, participant_key: str
    ) -> Optional[ConversationEntity]:
        conversation = self._session.query(Conversation).filter_by(
            clinic_id=tenant_id,
            type=conversation_type.value,
            participant_key=participant_key,
        ).first()
        return conversation.to_entity() if conversation else None

    def add(self, conversation: ConversationEntity) -> ConversationEntity:
        row = Conversation.from_entity(conversation)
        try:
            # SAVEPOINT keeps the surrounding transaction usable after a conflict
            with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as exc:
            raise DuplicateRecord('Conversation already exists') from exc
        return row.to_entity()

    def touch(self, conversation_id: int, at: datetime, preview: str) -> ConversationEntity:
        conversation = self._session.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFound('Conversation not found')
        conversation.last_message_at = at
        conversation.last_message_text = (preview or '')[:255]
        self._session.flush()
        return conversation.to_entity()

    def list_visible(self, visibility: Visibility, page: int, limit: int) -> Page[ConversationEntity]:
        pagination = self._visible_query(visibility).order_by(
            desc(Conversation.last_message_at), desc(Conversation.id)
        ).paginate(page=page, per_page=limit, error_out=False)
        return _page(pagination, [row.to_entity() for row in pagination.items])

    def visible_ids(self, visibility: Visibility) -> List[int]:
        return [row.id for row in self._visible_query(visibility).with_entities(Conversation.id)]

    def list_for_tenant(self, tenant_id: int) -> List[ConversationEntity]:
        rows = self._session.query(Conversation).filter(Conversation.clinic_id == tenant_id).all()
        return [row.to_entity() for row in rows]

    def _visible_query(self, visibility: Visibility):
        query = self._session.query(Conversation)
        if visibility.is_empty:
            return query.filter(false())
        if visibility.tenant_id is not None:
            query = query.filter(Conversation.clinic_id == visibility.tenant_id)
        if visibility.patient_id is not None:
            query = query.filter(Conversation.patient_id == visibility.patient_id)
        if visibility.doctor_account_id is not None:
            query = query.filter(Conversation.doctor_id == visibility.doctor_account_id)
        return query


class SqlMessageRepository(MessageRepository):
    def __init__(self, session):
        self._session = session

    def add(self, message: MessageEntity) -> MessageEntity:
        row = Message.from_entity(message)
        self._session.add(row)
        self._session.flush()
        return row.to_entity()

    def get(self, message_id: int) -> Optional[MessageEntity]:
        message = self._session.get(Message, message_id)
        return message.to_entity() if message else None

    def save(self, message: MessageEntity) -> MessageEntity:
        row = self._session.get(Message, message.id)
        if row is None:
            raise NotFound('Message not found')
        row.content = message.content
        row.image_url = message.image_url
        row.read_at = message.read_at
        row.deleted_at = message.deleted_at
        self._session.flush()
        return row.to_entity()

    def list_for_conversation(
        self, conversation_id: int, page: int, limit: int, before: Optional[datetime] = None
    ) -> Page[MessageEntity]:
        query = self._session.query(Message).filter(Message.conversation_id == conversation_id)
        if before is not None:
            query = query.filter(Message.created_at < before)

        # Newest first for paging, then reversed to show oldest first
        pagination = query.order_by(desc(Message.created_at), desc(Message.id)).paginate(
            page=page, per_page=limit, error_out=False
        )
        items = [row.to_entity() for row in pagination.items]
        items.reverse()
        return _page(pagination, items)

    def mark_read(
        self, conversation_id: int, reader_account_id: int, reader_sender_type: SenderType, at: datetime
    ) -> int:
        count = self._unread_query([conversation_id], reader_account_id, reader_sender_type).update(
            {Message.read_at: at}, synchronize_session=False
        )
        self._session.flush()
        return count

    def unread_by_conversation(
        self, conversation_ids: Sequence[int], reader_account_id: int, reader_sender_type: SenderType
    ) -> Dict[int, int]:
        if not conversation_ids:
            return {}
        rows = self._unread_query(conversation_ids, reader_account_id, reader_sender_type).with_entities(
            Message.conversation_id, func.count(Message.id)
        ).group_by(Message.conversation_id).all()
        return {conversation_id: count for conversation_id, count in rows}

    def _unread_query(self, conversation_ids, reader_account_id, reader_sender_type):
        return self._session.query(Message).filter(
            Message.conversation_id.in_(list(conversation_ids)),
            Message.read_at.is_(None),
            Message.deleted_at.is_(None),
            Message.sender_id != reader_account_id,
            Message.sender_type != reader_sender_type.value,
        )
