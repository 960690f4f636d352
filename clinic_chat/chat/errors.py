"""
Chat failures.

Raised by the core at the point a rule is violated and mapped to HTTP
responses by the error handlers; each class carries its wire code and status.
"""


class ChatError(Exception):
    code = 'INTERNAL_ERROR'
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}


class NotFound(ChatError):
    code = 'NOT_FOUND'
    status_code = 404
    default_message = 'Resource not found'


class ValidationFailed(ChatError):
    code = 'VALIDATION_ERROR'
    status_code = 400
    default_message = 'Invalid input'


class BadRequest(ChatError):
    code = 'BAD_REQUEST'
    status_code = 400
    default_message = 'Bad request'


class Forbidden(ChatError):
    code = 'FORBIDDEN'
    status_code = 403
    default_message = 'You are not allowed to access this conversation'


class Conflict(ChatError):
    code = 'CONFLICT'
    status_code = 409
    default_message = 'Record already exists'


class DuplicateRecord(Conflict):
    """Raised by repositories when an insert hits a uniqueness constraint."""


class GuestCannotSendMessages(Forbidden):
    code = 'GUEST_CANNOT_SEND_MESSAGES'
    default_message = 'Guest patients cannot send messages. Please register first.'


class CannotCreateConversationWithGuest(Forbidden):
    code = 'CANNOT_CREATE_CONVERSATION_WITH_GUEST'
    default_message = 'Cannot start a conversation with a guest patient.'


class ClinicNotFound(ChatError):
    code = 'CLINIC_NOT_FOUND'
    status_code = 404
    default_message = 'No clinic could be determined for this account'


class ClinicIdRequired(ChatError):
    code = 'CLINIC_ID_REQUIRED'
    status_code = 400
    default_message = 'Clinic ID is required'


class PatientNotFound(ChatError):
    code = 'PATIENT_NOT_FOUND'
    status_code = 404
    default_message = 'Patient not found'


class InvalidConversationParameters(ChatError):
    code = 'INVALID_CONVERSATION_PARAMETERS'
    status_code = 400
    default_message = 'conversation_id, patient_id or doctor_id is required'


_ERRORS_BY_CODE = {
    cls.code: cls for cls in (
        NotFound, ValidationFailed, BadRequest, Forbidden, Conflict,
        GuestCannotSendMessages, CannotCreateConversationWithGuest,
        ClinicNotFound, ClinicIdRequired, PatientNotFound,
        InvalidConversationParameters,
    )
}


def error_for_code(code, message=None):
    """Build the typed failure for a denial code."""
    return _ERRORS_BY_CODE.get(code, Forbidden)(message)
