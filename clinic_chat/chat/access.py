"""
Access Gate: decides whether a principal may read, send into, or create a
conversation. Pure predicate; never touches storage.

Rules, first match wins:
  1. Clinic scope and participation   -> FORBIDDEN
  2. Guest patients cannot write      -> GUEST_CANNOT_SEND_MESSAGES
  3. Clinic cannot open a guest chat  -> CANNOT_CREATE_CONVERSATION_WITH_GUEST
"""

from dataclasses import dataclass
from typing import Optional, Union

from clinic_chat.chat.entities import Conversation, Patient
from clinic_chat.chat.errors import (
    CannotCreateConversationWithGuest,
    Forbidden,
    GuestCannotSendMessages,
    error_for_code,
)
from clinic_chat.chat.types import Action, ConversationType, Global, Principal, Role, Scoped


@dataclass(frozen=True)
class Ok:
    def __bool__(self) -> bool:
        return True


@dataclass(frozen=True)
class Denied:
    code: str
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return False


Decision = Union[Ok, Denied]


@dataclass(frozen=True)
class AccessTarget:
    """An existing conversation, or the participants of one about to be created."""
    tenant_id: int
    conversation_type: ConversationType
    patient: Optional[Patient] = None
    doctor_account_id: Optional[int] = None

    @classmethod
    def for_conversation(cls, conversation: Conversation, patient: Optional[Patient] = None) -> "AccessTarget":
        return cls(
            tenant_id=conversation.tenant_id,
            conversation_type=conversation.type,
            patient=patient,
            doctor_account_id=conversation.doctor_account_id,
        )


class AccessGate:
    def authorize(
        self,
        principal: Principal,
        action: Action,
        target: AccessTarget,
        acting_patient: Optional[Patient] = None,
    ) -> Decision:
        denied = self._check_scope(principal, target)
        if denied is None:
            denied = self._check_participant(principal, target, acting_patient)
        if denied is None:
            denied = self._check_guest(principal, action, target, acting_patient)
        return Ok() if denied is None else denied

    def enforce(
        self,
        principal: Principal,
        action: Action,
        target: AccessTarget,
        acting_patient: Optional[Patient] = None,
    ) -> None:
        decision = self.authorize(principal, action, target, acting_patient)
        if isinstance(decision, Denied):
            raise error_for_code(decision.code, decision.message)

    @staticmethod
    def _check_scope(principal: Principal, target: AccessTarget) -> Optional[Denied]:
        scope = principal.tenant
        if isinstance(scope, Scoped):
            if scope.tenant_id != target.tenant_id:
                return Denied(Forbidden.code, 'Conversation belongs to another clinic')
            return None
        if isinstance(scope, Global):
            # Unbound patients are limited to their own threads by the participant check.
            if principal.role is Role.PATIENT:
                return None
            return Denied(Forbidden.code, 'A clinic is required for this action')
        raise TypeError(f"Unknown tenant scope: {scope!r}")

    @staticmethod
    def _check_participant(
        principal: Principal, target: AccessTarget, acting_patient: Optional[Patient]
    ) -> Optional[Denied]:
        if principal.role is Role.PATIENT:
            if acting_patient is None or target.patient is None or acting_patient.id != target.patient.id:
                return Denied(Forbidden.code)
            return None
        if principal.role is Role.DOCTOR:
            if target.doctor_account_id != principal.account_id:
                return Denied(Forbidden.code)
            return None
        return None

    @staticmethod
    def _check_guest(
        principal: Principal, action: Action, target: AccessTarget, acting_patient: Optional[Patient]
    ) -> Optional[Denied]:
        if action is Action.READ:
            return None

        if principal.role is Role.PATIENT and acting_patient is not None and acting_patient.is_guest:
            return Denied(GuestCannotSendMessages.code)

        target_is_guest = target.patient is not None and target.patient.is_guest
        if action is Action.SEND and target_is_guest:
            return Denied(GuestCannotSendMessages.code)

        if (action is Action.CREATE and principal.is_staff and target_is_guest
                and target.conversation_type is ConversationType.PATIENT_CLINIC):
            return Denied(CannotCreateConversationWithGuest.code)
        return None
