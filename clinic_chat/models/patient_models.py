from datetime import datetime
from clinic_chat.extensions import db
from clinic_chat.chat.entities import Patient as PatientEntity
from clinic_chat.chat.types import PatientStatus

class Patient(db.Model):
    """A person receiving care at one clinic."""
    __tablename__ = 'patients'

    id = db.Column(db.Integer, primary_key=True)
    clinic_id = db.Column(db.Integer, db.ForeignKey('clinics.id'), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), nullable=False, default='', index=True)
    email = db.Column(db.String(255), index=True)
    status = db.Column(db.String(20), nullable=False, default=PatientStatus.REGISTERED.value)  # 'guest' or 'registered'
    avatar = db.Column(db.String(1024))

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    clinic = db.relationship('Clinic', backref=db.backref('patients', lazy='dynamic'))

    def to_entity(self) -> PatientEntity:
        return PatientEntity(
            id=self.id,
            tenant_id=self.clinic_id,
            name=self.name,
            phone=self.phone or '',
            email=self.email,
            status=PatientStatus(self.status),
            avatar=self.avatar,
            created_at=self.created_at,
        )
