"""
Conversation Registry: finds or opens the single conversation a clinic keeps
for each participant pair.

Uniqueness key per conversation type:
  clinic_doctor   -> (clinic, doctor)
  patient_clinic  -> (clinic, patient)
  patient_doctor  -> (clinic, patient, doctor)

Lookup and insert are not atomic. A uniqueness violation on insert means a
concurrent request opened the same conversation; the registry re-fetches and
returns that one.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

from clinic_chat.chat.access import AccessGate, AccessTarget
from clinic_chat.chat.entities import Conversation, ParticipantKey, Patient
from clinic_chat.chat.errors import (
    ClinicIdRequired,
    ClinicNotFound,
    DuplicateRecord,
    InvalidConversationParameters,
    NotFound,
    PatientNotFound,
)
from clinic_chat.chat.identity import IdentityResolver
from clinic_chat.chat.ports import (
    AccountRepository,
    ConversationRepository,
    PatientProfiles,
    PatientRepository,
)
from clinic_chat.chat.types import Action, ConversationType, Principal, Role

logger = logging.getLogger(__name__)


class ConversationRegistry:
    def __init__(
        self,
        conversations: ConversationRepository,
        patients: PatientRepository,
        accounts: AccountRepository,
        profiles: PatientProfiles,
        identity: IdentityResolver,
        gate: AccessGate,
        clock=datetime.utcnow,
    ) -> None:
        self._conversations = conversations
        self._patients = patients
        self._accounts = accounts
        self._profiles = profiles
        self._identity = identity
        self._gate = gate
        self._clock = clock

    def find_or_create(
        self,
        tenant_id: Optional[int],
        conversation_type: ConversationType,
        key: ParticipantKey,
        initiator: Principal,
    ) -> Conversation:
        if tenant_id is None:
            raise ClinicNotFound()

        participant_key = key.render(conversation_type)
        existing = self._conversations.find_by_key(tenant_id, conversation_type, participant_key)
        if existing is not None:
            return existing

        now = self._clock()
        conversation = Conversation(
            id=None,
            tenant_id=tenant_id,
            type=conversation_type,
            patient_id=None if conversation_type is ConversationType.CLINIC_DOCTOR else key.patient_id,
            doctor_account_id=None if conversation_type is ConversationType.PATIENT_CLINIC else key.doctor_account_id,
            created_at=now,
            last_message_at=now,
        )
        try:
            created = self._conversations.add(conversation)
        except DuplicateRecord:
            logger.info(f"Conversation {participant_key} in clinic {tenant_id} was opened concurrently; re-fetching")
            existing = self._conversations.find_by_key(tenant_id, conversation_type, participant_key)
            if existing is None:
                raise
            return existing

        logger.info(
            f"Opened {conversation_type.value} conversation {created.id} in clinic {tenant_id} "
            f"(initiator account {initiator.account_id})"
        )
        return created

    def provision_patient(self, principal: Principal) -> Patient:
        """Patient record for a PATIENT account, registering one if none matches."""
        account = self._accounts.get(principal.account_id)
        if account is None:
            raise NotFound('Account not found')

        patient = self._identity.resolve_patient_identity(principal.tenant_id, account.email, account.phone)
        if patient is not None:
            return patient

        tenant_id = principal.tenant_id
        if tenant_id is None:
            tenant_id = account.tenant_id
        if tenant_id is None:
            elsewhere = self._identity.resolve_patient_identity(None, account.email, account.phone)
            tenant_id = elsewhere.tenant_id if elsewhere else None
        if tenant_id is None:
            raise ClinicNotFound()

        name = (account.name or '').strip()
        if not name and account.email:
            name = account.email.split('@')[0].strip()
        name = name or 'Patient'

        logger.info(f"Registering patient for account {account.id} in clinic {tenant_id}")
        return self._profiles.find_or_create_patient(
            tenant_id, name=name, phone=account.phone or '', email=account.email
        )

    def open_clinic_doctor(self, principal: Principal, doctor_account_id: int) -> Conversation:
        tenant_id = self._require_clinic(principal)
        self._require_doctor(doctor_account_id, tenant_id)

        self._gate.enforce(principal, Action.CREATE, AccessTarget(
            tenant_id=tenant_id,
            conversation_type=ConversationType.CLINIC_DOCTOR,
            doctor_account_id=doctor_account_id,
        ))
        return self.find_or_create(
            tenant_id, ConversationType.CLINIC_DOCTOR,
            ParticipantKey(doctor_account_id=doctor_account_id), principal,
        )

    def open_clinic_patient(self, principal: Principal, patient_id: int) -> Conversation:
        self._require_clinic(principal)
        patient = self._patients.get(patient_id)
        if patient is None:
            raise PatientNotFound()

        self._gate.enforce(principal, Action.CREATE, AccessTarget(
            tenant_id=patient.tenant_id,
            conversation_type=ConversationType.PATIENT_CLINIC,
            patient=patient,
        ))
        return self.find_or_create(
            patient.tenant_id, ConversationType.PATIENT_CLINIC,
            ParticipantKey(patient_id=patient.id), principal,
        )

    def open_for_patient(
        self,
        principal: Principal,
        patient_id: Optional[int] = None,
        doctor_account_id: Optional[int] = None,
    ) -> Tuple[Conversation, Patient]:
        """
        Opens a patient-initiated thread. Without a doctor the thread is
        clinic-wide (patient_clinic); with one it is doctor-specific.
        Returns the conversation and the caller's Patient record.
        """
        if principal.role is not Role.PATIENT:
            raise InvalidConversationParameters()

        acting = self._identity.resolve_for_principal(principal)
        if patient_id is None:
            patient = acting if acting is not None else self.provision_patient(principal)
            acting = patient
        else:
            patient = self._patients.get(patient_id)
            if patient is None:
                raise PatientNotFound()

        if doctor_account_id is not None:
            self._require_doctor(doctor_account_id, patient.tenant_id)
            conversation_type = ConversationType.PATIENT_DOCTOR
        else:
            conversation_type = ConversationType.PATIENT_CLINIC

        self._gate.enforce(principal, Action.CREATE, AccessTarget(
            tenant_id=patient.tenant_id,
            conversation_type=conversation_type,
            patient=patient,
            doctor_account_id=doctor_account_id,
        ), acting_patient=acting)

        conversation = self.find_or_create(
            patient.tenant_id, conversation_type,
            ParticipantKey(patient_id=patient.id, doctor_account_id=doctor_account_id), principal,
        )
        return conversation, acting

    @staticmethod
    def _require_clinic(principal: Principal) -> int:
        if principal.tenant_id is None:
            raise ClinicIdRequired()
        return principal.tenant_id

    def _require_doctor(self, doctor_account_id: int, tenant_id: int) -> None:
        doctor = self._accounts.get(doctor_account_id)
        if doctor is None or doctor.role is not Role.DOCTOR or doctor.tenant_id != tenant_id:
            raise NotFound('Doctor not found')
