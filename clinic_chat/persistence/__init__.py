from clinic_chat.chat.service import ChatService
from clinic_chat.persistence.sqlalchemy_repositories import (
    SqlAccountRepository,
    SqlConversationRepository,
    SqlMessageRepository,
    SqlPatientProfiles,
    SqlPatientRepository,
)


def build_chat_service(session, max_message_length=5000):
    """ChatService bound to one SQLAlchemy session."""
    patients = SqlPatientRepository(session)
    return ChatService(
        accounts=SqlAccountRepository(session),
        patients=patients,
        profiles=SqlPatientProfiles(session, patients),
        conversations=SqlConversationRepository(session),
        messages=SqlMessageRepository(session),
        max_message_length=max_message_length,
    )
