# /clinic_chat/api/routes.py

from flask import current_app
from flask_jwt_extended import jwt_required
from . import api_bp
from clinic_chat.extensions import limiter
from clinic_chat.utils.decorators import audit_log
from .controllers import chat_controller

def _send_rate_limit():
    return current_app.config['CHAT_SEND_RATE_LIMIT']


# --- Conversation Endpoints ---
@api_bp.route('/chat/conversations', methods=['GET'])
@jwt_required()
@audit_log("VIEW_CONVERSATIONS", "conversations")
def get_conversations_route():
    return chat_controller.get_conversations()

@api_bp.route('/chat/conversations/<int:conversation_id>', methods=['GET'])
@jwt_required()
@audit_log("VIEW_CONVERSATION", "conversations")
def get_conversation_route(conversation_id):
    return chat_controller.get_conversation(conversation_id)

@api_bp.route('/chat/conversations/<int:conversation_id>/read', methods=['POST'])
@jwt_required()
@audit_log("MARK_CONVERSATION_READ", "conversations")
def mark_as_read_route(conversation_id):
    return chat_controller.mark_as_read(conversation_id)


# --- Message Endpoints ---
@api_bp.route('/chat/messages/<int:conversation_id>', methods=['GET'])
@jwt_required()
@audit_log("VIEW_MESSAGES", "messages")
def get_messages_route(conversation_id):
    return chat_controller.get_messages(conversation_id)

@api_bp.route('/chat/messages', methods=['POST'])
@jwt_required()
@limiter.limit(_send_rate_limit)
@audit_log("SEND_MESSAGE", "messages")
def send_message_route():
    return chat_controller.send_message()

@api_bp.route('/chat/messages/<int:message_id>', methods=['DELETE'])
@jwt_required()
@limiter.limit(_send_rate_limit)
@audit_log("DELETE_MESSAGE", "messages")
def delete_message_route(message_id):
    return chat_controller.delete_message(message_id)


# --- Counters & Contacts ---
@api_bp.route('/chat/unread-count', methods=['GET'])
@jwt_required()
@audit_log("VIEW_UNREAD_COUNT", "messages")
def get_unread_count_route():
    return chat_controller.get_unread_count()

@api_bp.route('/chat/available-contacts', methods=['GET'])
@jwt_required()
@audit_log("VIEW_AVAILABLE_CONTACTS", "contacts")
def get_available_contacts_route():
    return chat_controller.get_available_contacts()
