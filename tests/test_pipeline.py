import pytest

from clinic_chat.chat.entities import Conversation
from clinic_chat.chat.errors import (
    Forbidden,
    GuestCannotSendMessages,
    NotFound,
    ValidationFailed,
)
from clinic_chat.chat.types import ConversationType, SenderType

from tests.conftest import ADMIN, CLINIC, DOCTOR, GUEST, PATIENT, SECOND_DOCTOR, STAFF


@pytest.fixture
def clinic_thread(service, store, principal):
    conversation, _ = service.registry.open_for_patient(principal(PATIENT))
    return conversation


@pytest.fixture
def guest_thread(store, clock):
    # Opened before the patient lost registered status
    now = clock()
    return store.conversations.add(Conversation(
        id=None, tenant_id=CLINIC, type=ConversationType.PATIENT_CLINIC,
        patient_id=store.guest.id, created_at=now, last_message_at=now,
    ))


def test_send_stores_message_and_bumps_conversation(service, store, principal, clinic_thread):
    delivery = service.pipeline.send(
        clinic_thread, principal(STAFF), '  Your results are ready.  ',
    )

    message = delivery.message
    assert message.id is not None
    assert message.content == 'Your results are ready.'
    assert message.sender_type is SenderType.CLINIC
    assert message.sender_account_id == STAFF

    stored = store.conversations.get(clinic_thread.id)
    assert stored.last_message_at == message.created_at
    assert stored.last_message_text == 'Your results are ready.'
    assert delivery.conversation['id'] == clinic_thread.id
    assert delivery.conversation['patient']['id'] == store.pat.id


def test_sender_type_follows_role(service, principal, clinic_thread):
    admin_message = service.pipeline.send(clinic_thread, principal(ADMIN), 'hi').message
    acting = service.identity.resolve_for_principal(principal(PATIENT))
    patient_message = service.pipeline.send(
        clinic_thread, principal(PATIENT), 'hello', acting_patient=acting
    ).message

    assert admin_message.sender_type is SenderType.CLINIC
    assert patient_message.sender_type is SenderType.PATIENT


def test_mismatched_sender_type_is_rejected(service, store, principal, clinic_thread):
    with pytest.raises(ValidationFailed):
        service.pipeline.send(clinic_thread, principal(STAFF), 'hi', sender_type=SenderType.DOCTOR)
    assert store.messages.rows == {}


def test_image_only_message(service, store, principal, clinic_thread):
    delivery = service.pipeline.send(clinic_thread, principal(STAFF), None, image_url='https://cdn.test/x.png')
    assert delivery.message.content == ''
    assert store.conversations.get(clinic_thread.id).last_message_text == '[image]'


@pytest.mark.parametrize('content, image_url', [(None, None), ('   ', ''), ('', '  ')])
def test_empty_payload_is_rejected(service, store, principal, clinic_thread, content, image_url):
    with pytest.raises(ValidationFailed):
        service.pipeline.send(clinic_thread, principal(STAFF), content, image_url=image_url)
    assert store.messages.rows == {}


def test_content_length_limit(service, principal, clinic_thread):
    service.pipeline.send(clinic_thread, principal(STAFF), 'x' * 50)
    with pytest.raises(ValidationFailed):
        service.pipeline.send(clinic_thread, principal(STAFF), 'x' * 51)


def test_long_preview_is_truncated(service, store, principal, clinic_thread):
    service.pipeline._max_length = 1000
    service.pipeline.send(clinic_thread, principal(STAFF), 'y' * 400)
    assert len(store.conversations.get(clinic_thread.id).last_message_text) == 200


def test_nobody_writes_into_guest_conversation(service, store, principal, guest_thread):
    guest_patient = service.identity.resolve_for_principal(principal(GUEST))

    with pytest.raises(GuestCannotSendMessages):
        service.pipeline.send(guest_thread, principal(GUEST), 'hello', acting_patient=guest_patient)
    with pytest.raises(GuestCannotSendMessages):
        service.pipeline.send(guest_thread, principal(STAFF), 'hello')

    assert store.messages.rows == {}
    assert store.conversations.get(guest_thread.id).last_message_text is None


def test_doctor_cannot_write_into_someone_elses_thread(service, store, principal):
    conversation, _ = service.registry.open_for_patient(principal(PATIENT), doctor_account_id=DOCTOR)
    with pytest.raises(Forbidden):
        service.pipeline.send(conversation, principal(SECOND_DOCTOR), 'hi')
    assert service.pipeline.send(conversation, principal(DOCTOR), 'hi').message.sender_type is SenderType.DOCTOR


def test_delete_redacts_own_message(service, store, principal, clinic_thread):
    message = service.pipeline.send(clinic_thread, principal(STAFF), 'typo', image_url='https://cdn.test/a.png').message

    deleted = service.pipeline.delete(message.id, STAFF, CLINIC)

    assert deleted.is_deleted
    assert deleted.content == ''
    assert deleted.image_url is None
    assert store.messages.get(message.id).deleted_at == deleted.deleted_at


def test_delete_twice_keeps_first_timestamp(service, principal, clinic_thread):
    message = service.pipeline.send(clinic_thread, principal(STAFF), 'typo').message
    first = service.pipeline.delete(message.id, STAFF, CLINIC)
    second = service.pipeline.delete(message.id, STAFF, CLINIC)
    assert first.deleted_at == second.deleted_at


def test_only_sender_may_delete(service, store, principal, clinic_thread):
    message = service.pipeline.send(clinic_thread, principal(STAFF), 'keep me').message

    with pytest.raises(Forbidden):
        service.pipeline.delete(message.id, ADMIN, CLINIC)
    with pytest.raises(Forbidden):
        service.pipeline.delete(message.id, STAFF, 2)

    unchanged = store.messages.get(message.id)
    assert unchanged.content == 'keep me'
    assert not unchanged.is_deleted


def test_delete_unknown_message(service):
    with pytest.raises(NotFound):
        service.pipeline.delete(404, STAFF, CLINIC)
