from datetime import datetime
from clinic_chat.extensions import db
from clinic_chat.chat.entities import Conversation as ConversationEntity, Message as MessageEntity
from clinic_chat.chat.types import ConversationType, SenderType

class Conversation(db.Model):
    """A chat thread inside one clinic."""
    __tablename__ = 'conversations'

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey('clinics.id'), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # patient_doctor, patient_clinic, clinic_doctor

    # Participants; which ones are set depends on the type
    patient_id = db.Column(db.Integer, db.ForeignKey('patients.id'), index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('users.id'), index=True)
    participant_key = db.Column(db.String(100), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_message_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    last_message_text = db.Column(db.String(255))

    patient = db.relationship('Patient', backref=db.backref('conversations', lazy='dynamic'))
    doctor = db.relationship('User', foreign_keys=[doctor_id])
    messages = db.relationship('Message', backref='conversation', lazy='dynamic')

    # One conversation per participant pair and type within a clinic
    __table_args__ = (
        db.UniqueConstraint('clinic_id', 'type', 'participant_key', name='unique_conversation_participants'),
    )

    @classmethod
    def from_entity(cls, entity: ConversationEntity) -> 'Conversation':
        return cls(
            clinic_id=entity.tenant_id,
            type=entity.type.value,
            patient_id=entity.patient_id,
            doctor_id=entity.doctor_account_id,
            participant_key=entity.participant_key,
            created_at=entity.created_at,
            last_message_at=entity.last_message_at,
            last_message_text=entity.last_message_text,
        )

    def to_entity(self) -> ConversationEntity:
        return ConversationEntity(
            id=self.id,
            tenant_id=self.clinic_id,
            type=ConversationType(self.type),
            patient_id=self.patient_id,
            doctor_account_id=self.doctor_id,
            created_at=self.created_at,
            last_message_at=self.last_message_at,
            last_message_text=self.last_message_text,
        )

class Message(db.Model):
    """A single chat message. Deletion redacts the row instead of removing it."""
    __tablename__ = 'messages'

    id = db.Column(db.Integer, primary_key=True)
    conversation_id = db.Column(db.Integer, db.ForeignKey('conversations.id'), nullable=False, index=True)
    sender_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    sender_type = db.Column(db.String(20), nullable=False)  # patient, doctor, clinic

    content = db.Column(db.Text, nullable=False, default='')
    image_url = db.Column(db.String(1024))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    read_at = db.Column(db.DateTime)
    deleted_at = db.Column(db.DateTime)

    sender = db.relationship('User', foreign_keys=[sender_id])

    @classmethod
    def from_entity(cls, entity: MessageEntity) -> 'Message':
        return cls(
            conversation_id=entity.conversation_id,
            sender_id=entity.sender_account_id,
            sender_type=entity.sender_type.value,
            content=entity.content,
            image_url=entity.image_url,
            created_at=entity.created_at,
            read_at=entity.read_at,
            deleted_at=entity.deleted_at,
        )

    def to_entity(self) -> MessageEntity:
        return MessageEntity(
            id=self.id,
            conversation_id=self.conversation_id,
            sender_account_id=self.sender_id,
            sender_type=SenderType(self.sender_type),
            content=self.content or '',
            image_url=self.image_url,
            read_at=self.read_at,
            created_at=self.created_at,
            deleted_at=self.deleted_at,
        )
