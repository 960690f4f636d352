# /clinic_chat/api/controllers/chat_controller.py
from datetime import datetime
from flask import request, jsonify, current_app
from clinic_chat.extensions import db
from clinic_chat.persistence import build_chat_service
from clinic_chat.chat.errors import ValidationFailed
from clinic_chat.utils.decorators import current_principal

def _chat_service():
    return build_chat_service(
        db.session, max_message_length=current_app.config['CHAT_MAX_MESSAGE_LENGTH']
    )

def _page_args():
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', current_app.config['CHAT_PAGE_LIMIT_DEFAULT'], type=int)
    return max(page, 1), min(max(limit, 1), current_app.config['CHAT_PAGE_LIMIT_MAX'])

def _optional_int(data, field):
    value = data.get(field)
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationFailed(f'{field} must be an integer')
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f'{field} must be an integer')

def get_conversations():
    """List the conversations visible to the current account."""
    page, limit = _page_args()
    result = _chat_service().list_conversations(current_principal(), page=page, limit=limit)
    return jsonify(result), 200

def get_conversation(conversation_id):
    """Get a single conversation with participant details."""
    conversation = _chat_service().get_conversation(current_principal(), conversation_id)
    return jsonify({'conversation': conversation}), 200

def get_messages(conversation_id):
    """Get messages of a conversation, oldest first within the page."""
    page, limit = _page_args()
    before = request.args.get('before')
    if before:
        try:
            before = datetime.fromisoformat(before)
        except ValueError:
            raise ValidationFailed('before must be an ISO 8601 timestamp')
    else:
        before = None

    result = _chat_service().list_messages(
        current_principal(), conversation_id, page=page, limit=limit, before=before
    )
    return jsonify(result), 200

def send_message():
    """Send a message into an existing conversation or open a new one."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationFailed('Request body must be a JSON object')

    delivery = _chat_service().send_message(
        current_principal(),
        content=data.get('content'),
        image_url=data.get('image_url'),
        conversation_id=_optional_int(data, 'conversation_id'),
        patient_id=_optional_int(data, 'patient_id'),
        doctor_id=_optional_int(data, 'doctor_id'),
    )
    db.session.commit()
    return jsonify(delivery.to_dict()), 201

def mark_as_read(conversation_id):
    """Mark the other participants' messages in a conversation as read."""
    count = _chat_service().mark_read(current_principal(), conversation_id)
    db.session.commit()
    return jsonify({'conversation_id': conversation_id, 'read_count': count}), 200

def get_unread_count():
    """Total unread messages across the current account's conversations."""
    count = _chat_service().unread_count(current_principal())
    return jsonify({'unread_count': count}), 200

def delete_message(message_id):
    """Redact one of the current account's own messages."""
    message = _chat_service().delete_message(current_principal(), message_id)
    db.session.commit()
    return jsonify({'message': message.to_dict()}), 200

def get_available_contacts():
    """Doctors and registered patients the clinic has not talked to yet."""
    contacts = _chat_service().available_contacts(current_principal())
    return jsonify(contacts), 200
