"""
In-memory implementations of the chat repository ports.

Records are copied on the way in and out so tests observe the same
value semantics a database gives.
"""

import threading
from dataclasses import replace
from datetime import datetime, timedelta

from clinic_chat.chat.entities import Page, Patient
from clinic_chat.chat.errors import DuplicateRecord, NotFound
from clinic_chat.chat.ports import (
    AccountRepository,
    ConversationRepository,
    MessageRepository,
    PatientProfiles,
    PatientRepository,
)
from clinic_chat.chat.types import PatientStatus, Role


class FakeClock:
    """Strictly increasing timestamps, one second apart."""

    def __init__(self, start=datetime(2026, 1, 5, 9, 0, 0)):
        self.now = start

    def __call__(self):
        self.now += timedelta(seconds=1)
        return self.now


def _paginate(items, page, limit):
    start = (page - 1) * limit
    return Page(items=items[start:start + limit], page=page, limit=limit, total=len(items))


class InMemoryAccounts(AccountRepository):
    def __init__(self):
        self.rows = {}

    def add(self, account):
        self.rows[account.id] = replace(account)
        return account

    def get(self, account_id):
        account = self.rows.get(account_id)
        return replace(account) if account else None

    def list_doctors(self, tenant_id):
        return [
            replace(a) for a in sorted(self.rows.values(), key=lambda a: (a.name, a.id))
            if a.tenant_id == tenant_id and a.role is Role.DOCTOR and a.is_active
        ]


class InMemoryPatients(PatientRepository):
    def __init__(self, clock=None):
        self.rows = {}
        self._next_id = 1
        self._clock = clock or FakeClock()

    def add(self, patient):
        patient = replace(patient, id=self._next_id, created_at=patient.created_at or self._clock())
        self._next_id += 1
        self.rows[patient.id] = patient
        return replace(patient)

    def get(self, patient_id):
        patient = self.rows.get(patient_id)
        return replace(patient) if patient else None

    def find_latest_by_contact(self, email, phone, tenant_id=None):
        matches = [
            p for p in self.rows.values()
            if ((email and p.email == email) or (phone and p.phone == phone))
            and (tenant_id is None or p.tenant_id == tenant_id)
        ]
        if not matches:
            return None
        return replace(max(matches, key=lambda p: (p.created_at, p.id)))

    def list_by_status(self, tenant_id, status):
        return [
            replace(p) for p in self.rows.values()
            if p.tenant_id == tenant_id and p.status is status
        ]


class InMemoryProfiles(PatientProfiles):
    def __init__(self, patients):
        self._patients = patients
        self.created = []

    def find_or_create_patient(self, tenant_id, name, phone, email):
        existing = self._patients.find_latest_by_contact(email=email, phone=phone, tenant_id=tenant_id)
        if existing is not None:
            return existing

        patient = self._patients.add(Patient(
            id=None, tenant_id=tenant_id, name=name, phone=phone, email=email,
            status=PatientStatus.REGISTERED,
        ))
        self.created.append(patient)
        return patient


class InMemoryConversations(ConversationRepository):
    def __init__(self):
        self.rows = {}
        self._keys = {}
        self._next_id = 1
        self._lock = threading.Lock()
        self.before_insert = None  # hook to simulate a concurrent writer
        self.insert_attempts = 0

    def get(self, conversation_id):
        conversation = self.rows.get(conversation_id)
        return replace(conversation) if conversation else None

    def find_by_key(self, tenant_id, conversation_type, participant_key):
        conversation_id = self._keys.get((tenant_id, conversation_type, participant_key))
        return self.get(conversation_id) if conversation_id else None

    def add(self, conversation):
        self.insert_attempts += 1
        if self.before_insert is not None:
            hook, self.before_insert = self.before_insert, None
            hook(conversation)

        with self._lock:
            key = (conversation.tenant_id, conversation.type, conversation.participant_key)
            if key in self._keys:
                raise DuplicateRecord('Conversation already exists')
            stored = replace(conversation, id=self._next_id)
            self._next_id += 1
            self.rows[stored.id] = stored
            self._keys[key] = stored.id
        return replace(stored)

    def touch(self, conversation_id, at, preview):
        conversation = self.rows.get(conversation_id)
        if conversation is None:
            raise NotFound('Conversation not found')
        conversation.last_message_at = at
        conversation.last_message_text = preview[:255]
        return replace(conversation)

    def list_visible(self, visibility, page, limit):
        rows = sorted(
            self._visible(visibility),
            key=lambda c: (c.last_message_at, c.id),
            reverse=True,
        )
        return _paginate([replace(c) for c in rows], page, limit)

    def visible_ids(self, visibility):
        return [c.id for c in self._visible(visibility)]

    def list_for_tenant(self, tenant_id):
        return [replace(c) for c in self.rows.values() if c.tenant_id == tenant_id]

    def _visible(self, visibility):
        if visibility.is_empty:
            return []
        return [
            c for c in self.rows.values()
            if (visibility.tenant_id is None or c.tenant_id == visibility.tenant_id)
            and (visibility.patient_id is None or c.patient_id == visibility.patient_id)
            and (visibility.doctor_account_id is None or c.doctor_account_id == visibility.doctor_account_id)
        ]


class InMemoryMessages(MessageRepository):
    def __init__(self):
        self.rows = {}
        self._next_id = 1

    def add(self, message):
        stored = replace(message, id=self._next_id)
        self._next_id += 1
        self.rows[stored.id] = stored
        return replace(stored)

    def get(self, message_id):
        message = self.rows.get(message_id)
        return replace(message) if message else None

    def save(self, message):
        if message.id not in self.rows:
            raise NotFound('Message not found')
        self.rows[message.id] = replace(message)
        return replace(message)

    def list_for_conversation(self, conversation_id, page, limit, before=None):
        rows = [
            m for m in self.rows.values()
            if m.conversation_id == conversation_id and (before is None or m.created_at < before)
        ]
        rows.sort(key=lambda m: (m.created_at, m.id), reverse=True)
        result = _paginate([replace(m) for m in rows], page, limit)
        result.items.reverse()
        return result

    def mark_read(self, conversation_id, reader_account_id, reader_sender_type, at):
        unread = self._unread([conversation_id], reader_account_id, reader_sender_type)
        for message in unread:
            message.read_at = at
        return len(unread)

    def unread_by_conversation(self, conversation_ids, reader_account_id, reader_sender_type):
        counts = {}
        for message in self._unread(conversation_ids, reader_account_id, reader_sender_type):
            counts[message.conversation_id] = counts.get(message.conversation_id, 0) + 1
        return counts

    def _unread(self, conversation_ids, reader_account_id, reader_sender_type):
        ids = set(conversation_ids)
        return [
            m for m in self.rows.values()
            if m.conversation_id in ids and m.read_at is None and m.deleted_at is None
            and m.sender_account_id != reader_account_id and m.sender_type is not reader_sender_type
        ]
