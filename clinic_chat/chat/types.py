"""
Value types shared by the chat core: roles, sender and conversation kinds,
tenant scope and the per-request principal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"
    CLINIC = "CLINIC"


class SenderType(str, Enum):
    PATIENT = "patient"
    DOCTOR = "doctor"
    CLINIC = "clinic"


class ConversationType(str, Enum):
    PATIENT_DOCTOR = "patient_doctor"
    PATIENT_CLINIC = "patient_clinic"
    CLINIC_DOCTOR = "clinic_doctor"


class PatientStatus(str, Enum):
    GUEST = "guest"
    REGISTERED = "registered"


class Action(Enum):
    READ = "read"
    SEND = "send"
    CREATE = "create"


STAFF_ROLES = frozenset({Role.ADMIN, Role.CLINIC})

# Every role must map to exactly one sender type.
_SENDER_TYPE_BY_ROLE = {
    Role.PATIENT: SenderType.PATIENT,
    Role.DOCTOR: SenderType.DOCTOR,
    Role.ADMIN: SenderType.CLINIC,
    Role.CLINIC: SenderType.CLINIC,
}

_unmapped = set(Role) - set(_SENDER_TYPE_BY_ROLE)
if _unmapped:
    raise RuntimeError(f"Roles without a sender type: {sorted(r.value for r in _unmapped)}")


def sender_type_for(role: Role) -> SenderType:
    """Sender type stored on messages written by a principal with this role."""
    return _SENDER_TYPE_BY_ROLE[role]


@dataclass(frozen=True)
class Global:
    """Principal not bound to any clinic (e.g. a freshly registered patient)."""

    def __str__(self) -> str:
        return "global"


@dataclass(frozen=True)
class Scoped:
    tenant_id: int

    def __str__(self) -> str:
        return f"clinic:{self.tenant_id}"


TenantScope = Union[Global, Scoped]


def scope_for(tenant_id: Optional[int]) -> TenantScope:
    return Global() if tenant_id is None else Scoped(int(tenant_id))


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, rebuilt from token claims on every request."""
    account_id: int
    role: Role
    tenant: TenantScope

    @property
    def tenant_id(self) -> Optional[int]:
        if isinstance(self.tenant, Scoped):
            return self.tenant.tenant_id
        return None

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def sender_type(self) -> SenderType:
        return sender_type_for(self.role)
