import click
from flask.cli import with_appcontext
from clinic_chat.extensions import db
from clinic_chat.models import Clinic, User, Patient
from clinic_chat.chat.types import PatientStatus, Role

@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create the chat schema."""
    db.create_all()
    click.echo("Database initialized successfully!")

@click.command('seed-demo')
@click.option('--slug', default='demo-clinic', help='Slug of the demo clinic.')
@with_appcontext
def seed_demo_command(slug):
    """Create a demo clinic with one staff account, one doctor and two patients."""
    if Clinic.query.filter_by(slug=slug).first():
        click.echo(f"Clinic '{slug}' already exists")
        return

    clinic = Clinic(name='Demo Clinic', slug=slug)
    db.session.add(clinic)
    db.session.flush()

    accounts = [
        User(clinic_id=clinic.id, role=Role.CLINIC.value, name='Front Desk', email=f'desk@{slug}.test'),
        User(clinic_id=clinic.id, role=Role.DOCTOR.value, name='Dr. Demo', email=f'doctor@{slug}.test',
             specialization='General practice'),
        User(clinic_id=clinic.id, role=Role.PATIENT.value, name='Pat Demo', email=f'patient@{slug}.test',
             phone='+10000000001'),
    ]
    db.session.add_all(accounts)
    db.session.add_all([
        Patient(clinic_id=clinic.id, name='Pat Demo', email=f'patient@{slug}.test', phone='+10000000001',
                status=PatientStatus.REGISTERED.value),
        Patient(clinic_id=clinic.id, name='Walk-in Guest', phone='+10000000002',
                status=PatientStatus.GUEST.value),
    ])
    db.session.commit()

    for account in accounts:
        click.echo(f"{account.role:<8} account id={account.id} email={account.email}")
    click.echo(f"Demo clinic created with id={clinic.id}")

def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_demo_command)
