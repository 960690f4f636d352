from datetime import datetime
from types import SimpleNamespace

import pytest
from flask_jwt_extended import create_access_token

from clinic_chat import create_app
from clinic_chat.chat import ChatService, Principal, Role, scope_for
from clinic_chat.chat.entities import Account, Patient
from clinic_chat.chat.types import PatientStatus
from clinic_chat.extensions import db
from clinic_chat.models import Clinic, User, Patient as PatientModel

from tests.fakes import (
    FakeClock,
    InMemoryAccounts,
    InMemoryConversations,
    InMemoryMessages,
    InMemoryPatients,
    InMemoryProfiles,
)

CLINIC = 1
OTHER_CLINIC = 2

STAFF = 10
ADMIN = 11
DOCTOR = 20
SECOND_DOCTOR = 21
OTHER_DOCTOR = 22
PATIENT = 30
GUEST = 31
NEW_PATIENT = 32
UNBOUND_PATIENT = 33


# --- Chat core over in-memory repositories ---

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    accounts = InMemoryAccounts()
    patients = InMemoryPatients(clock)
    store = SimpleNamespace(
        accounts=accounts,
        patients=patients,
        profiles=InMemoryProfiles(patients),
        conversations=InMemoryConversations(),
        messages=InMemoryMessages(),
    )

    for account in (
        Account(STAFF, Role.CLINIC, name='Sunrise Front Desk', email='desk@sunrise.test', tenant_id=CLINIC),
        Account(ADMIN, Role.ADMIN, name='Sunrise Admin', email='admin@sunrise.test', tenant_id=CLINIC),
        Account(DOCTOR, Role.DOCTOR, name='Dr. Ada Grey', email='ada@sunrise.test',
                tenant_id=CLINIC, specialization='Cardiology'),
        Account(SECOND_DOCTOR, Role.DOCTOR, name='Dr. Ben Okafor', email='ben@sunrise.test', tenant_id=CLINIC),
        Account(OTHER_DOCTOR, Role.DOCTOR, name='Dr. Cy Lund', email='cy@harbor.test', tenant_id=OTHER_CLINIC),
        Account(PATIENT, Role.PATIENT, name='Pat Doe', email='pat@x.com', phone='555-0100', tenant_id=CLINIC),
        Account(GUEST, Role.PATIENT, name='Gus Guest', email='guest@x.com', tenant_id=CLINIC),
        Account(NEW_PATIENT, Role.PATIENT, name='', email='a@x.com', tenant_id=CLINIC),
        Account(UNBOUND_PATIENT, Role.PATIENT, name='Rae Roam', email='roam@x.com'),
    ):
        accounts.add(account)

    store.pat = patients.add(Patient(None, CLINIC, 'Pat Doe', phone='555-0100', email='pat@x.com'))
    store.guest = patients.add(Patient(None, CLINIC, 'Gus Guest', email='guest@x.com', status=PatientStatus.GUEST))
    store.roam = patients.add(Patient(None, OTHER_CLINIC, 'Rae Roam', email='roam@x.com'))
    store.carl = patients.add(Patient(None, CLINIC, 'Carl Kent', email='carl@x.com'))
    return store


@pytest.fixture
def service(store, clock):
    return ChatService(
        accounts=store.accounts,
        patients=store.patients,
        profiles=store.profiles,
        conversations=store.conversations,
        messages=store.messages,
        max_message_length=50,
        clock=clock,
    )


@pytest.fixture
def principal(store):
    """Principal for a seeded account, optionally with a different clinic claim."""
    def build(account_id, tenant_id='account'):
        account = store.accounts.get(account_id)
        if tenant_id == 'account':
            tenant_id = account.tenant_id
        return Principal(account_id=account.id, role=account.role, tenant=scope_for(tenant_id))
    return build


# --- HTTP API over an in-memory SQLite database ---

@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        _seed_database()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Bearer headers for a seeded user, carrying the claims the account service issues."""
    def build(email):
        user = User.query.filter_by(email=email).one()
        token = create_access_token(
            identity=str(user.id),
            additional_claims={'role': user.role, 'clinic_id': user.clinic_id},
        )
        return {'Authorization': f'Bearer {token}'}
    return build


def _seed_database():
    sunrise = Clinic(name='Sunrise Clinic', slug='sunrise')
    harbor = Clinic(name='Harbor Clinic', slug='harbor')
    db.session.add_all([sunrise, harbor])
    db.session.flush()

    db.session.add_all([
        User(clinic_id=sunrise.id, role='CLINIC', name='Sunrise Front Desk', email='desk@sunrise.test'),
        User(clinic_id=sunrise.id, role='DOCTOR', name='Dr. Ada Grey', email='ada@sunrise.test',
             specialization='Cardiology'),
        User(clinic_id=sunrise.id, role='DOCTOR', name='Dr. Ben Okafor', email='ben@sunrise.test'),
        User(clinic_id=harbor.id, role='CLINIC', name='Harbor Front Desk', email='desk@harbor.test'),
        User(clinic_id=sunrise.id, role='PATIENT', name='Pat Doe', email='pat@x.com', phone='555-0100'),
        User(clinic_id=sunrise.id, role='PATIENT', name='Gus Guest', email='guest@x.com'),
        User(clinic_id=sunrise.id, role='PATIENT', name='', email='a@x.com'),
    ])
    db.session.add_all([
        PatientModel(clinic_id=sunrise.id, name='Pat Doe', phone='555-0100', email='pat@x.com',
                     created_at=datetime(2026, 1, 1, 8, 0)),
        PatientModel(clinic_id=sunrise.id, name='Gus Guest', email='guest@x.com', status='guest',
                     created_at=datetime(2026, 1, 1, 8, 5)),
        PatientModel(clinic_id=sunrise.id, name='Carl Kent', email='carl@x.com',
                     created_at=datetime(2026, 1, 1, 8, 10)),
    ])
    db.session.commit()
