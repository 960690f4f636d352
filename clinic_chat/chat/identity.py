"""
Identity Resolution: maps a patient account's contact details to the
Patient record used for authorization and conversation lookup.

Accounts and Patient records are linked only through email/phone. When the
caller's clinic is known the search is limited to it; otherwise every clinic
is searched. The newest matching record wins.
"""

import logging
from typing import Optional

from clinic_chat.chat.entities import Patient
from clinic_chat.chat.ports import AccountRepository, PatientRepository
from clinic_chat.chat.types import Principal, Role

logger = logging.getLogger(__name__)


class IdentityResolver:
    def __init__(self, patients: PatientRepository, accounts: AccountRepository) -> None:
        self._patients = patients
        self._accounts = accounts

    def resolve_patient_identity(
        self, tenant_id: Optional[int], email: Optional[str], phone: Optional[str]
    ) -> Optional[Patient]:
        """
        Returns None when no Patient matches; callers create one on demand.
        """
        email = (email or "").strip() or None
        phone = (phone or "").strip() or None
        if not email and not phone:
            return None

        patient = self._patients.find_latest_by_contact(email=email, phone=phone, tenant_id=tenant_id)
        if patient is None:
            logger.debug(f"No patient record for contact (clinic={tenant_id})")
        return patient

    def resolve_for_principal(self, principal: Principal) -> Optional[Patient]:
        """Patient identity of a PATIENT principal; None for every other role."""
        if principal.role is not Role.PATIENT:
            return None

        account = self._accounts.get(principal.account_id)
        if account is None:
            return None
        return self.resolve_patient_identity(principal.tenant_id, account.email, account.phone)
