"""
Contact discovery for clinic staff: doctors and registered patients the
clinic has no conversation with yet. Recomputed on every call.
"""

from clinic_chat.chat.errors import BadRequest, Forbidden
from clinic_chat.chat.ports import AccountRepository, ConversationRepository, PatientRepository
from clinic_chat.chat.types import ConversationType, PatientStatus, Principal


class ContactDirectory:
    def __init__(
        self,
        accounts: AccountRepository,
        patients: PatientRepository,
        conversations: ConversationRepository,
    ) -> None:
        self._accounts = accounts
        self._patients = patients
        self._conversations = conversations

    def available_contacts(self, tenant_id: int) -> dict:
        doctors_in_chat = set()
        patients_in_chat = set()
        for conversation in self._conversations.list_for_tenant(tenant_id):
            if conversation.type is ConversationType.CLINIC_DOCTOR and conversation.doctor_account_id:
                doctors_in_chat.add(conversation.doctor_account_id)
            elif conversation.type is ConversationType.PATIENT_CLINIC and conversation.patient_id:
                patients_in_chat.add(conversation.patient_id)

        doctors = [
            doctor.to_contact() for doctor in self._accounts.list_doctors(tenant_id)
            if doctor.id not in doctors_in_chat
        ]
        patients = [
            patient.to_contact() for patient in self._patients.list_by_status(tenant_id, PatientStatus.REGISTERED)
            if patient.id not in patients_in_chat
        ]
        return {
            'doctors': doctors,
            'patients': patients,
            'meta': {'total_doctors': len(doctors), 'total_patients': len(patients)},
        }

    def for_principal(self, principal: Principal) -> dict:
        if not principal.is_staff:
            raise Forbidden('Available only to clinic staff')
        if principal.tenant_id is None:
            raise BadRequest('Clinic ID is required')
        return self.available_contacts(principal.tenant_id)
