from datetime import datetime
from clinic_chat.extensions import db
from clinic_chat.chat.entities import Account
from clinic_chat.chat.types import Role

class User(db.Model):
    """Login account. Managed by the account service; read-only to chat."""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey('clinics.id'), index=True)  # NULL until bound to a clinic
    role = db.Column(db.String(20), nullable=False)  # PATIENT, DOCTOR, ADMIN, CLINIC
    name = db.Column(db.String(255), nullable=False, default='')
    email = db.Column(db.String(255), unique=True, index=True)
    phone = db.Column(db.String(50), index=True)
    specialization = db.Column(db.String(100))
    avatar = db.Column(db.String(1024))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    clinic = db.relationship('Clinic', backref=db.backref('users', lazy='dynamic'))

    def to_entity(self) -> Account:
        return Account(
            id=self.id,
            role=Role(self.role),
            name=self.name or '',
            email=self.email,
            phone=self.phone,
            tenant_id=self.clinic_id,
            specialization=self.specialization,
            avatar=self.avatar,
            is_active=bool(self.is_active),
        )
