from flask import jsonify, current_app
from clinic_chat.extensions import db
from clinic_chat.chat.errors import ChatError

def register_error_handlers(app):
    @app.errorhandler(ChatError)
    def chat_error(error):
        if error.status_code >= 500:
            db.session.rollback()
            current_app.logger.error(f"Chat failure: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'error': 'Resource not found', 'code': 'NOT_FOUND'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed', 'code': 'METHOD_NOT_ALLOWED'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        current_app.audit_logger.error(f"Internal server error: {str(error)}")
        return jsonify({'error': 'Internal server error', 'code': 'INTERNAL_ERROR'}), 500
