from functools import wraps
from flask import request, current_app, make_response
from flask_jwt_extended import get_jwt, get_jwt_identity
from sqlalchemy.exc import SQLAlchemyError
from clinic_chat.extensions import db
from clinic_chat.models.system_models import AuditLog
from clinic_chat.chat.errors import Forbidden
from clinic_chat.chat.types import Principal, Role, scope_for

def current_principal() -> Principal:
    """Builds the caller's Principal from the verified JWT (sub, role, clinic_id)."""
    claims = get_jwt()
    try:
        role = Role(claims.get('role'))
    except ValueError:
        raise Forbidden('Unknown account role')
    return Principal(
        account_id=int(get_jwt_identity()),
        role=role,
        tenant=scope_for(claims.get('clinic_id')),
    )

def audit_log(action, resource):
    """Records every chat API call in the audit table and the audit log."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = None
            clinic_id = None
            resource_id = next((str(v) for v in kwargs.values()), None)
            ip_address = request.remote_addr
            user_agent = request.headers.get('User-Agent')

            try:
                user_id = get_jwt_identity()
                clinic_id = get_jwt().get('clinic_id')
            except RuntimeError:
                # No JWT in this request context
                pass

            try:
                raw_response = f(*args, **kwargs)
                response = make_response(raw_response)

                success = response.status_code < 400
                details = f"Request successful. Status: {response.status_code}"
                _record(action, resource, resource_id, user_id, clinic_id, ip_address, user_agent, success, details)
                return response

            except Exception as e:
                # Discard the failed request's writes before the audit row is committed
                db.session.rollback()
                details = f"{type(e).__name__}: {e}"
                _record(action, resource, resource_id, user_id, clinic_id, ip_address, user_agent, False, details)
                raise

        return decorated_function
    return decorator

def _record(action, resource, resource_id, user_id, clinic_id, ip_address, user_agent, success, details):
    log_entry = AuditLog(
        user_id=int(user_id) if user_id is not None else None,
        clinic_id=clinic_id,
        action=action,
        resource=resource,
        resource_id=resource_id,
        ip_address=ip_address,
        user_agent=user_agent,
        success=success,
        details=details
    )
    try:
        db.session.add(log_entry)
        db.session.commit()
    except SQLAlchemyError as db_error:
        current_app.audit_logger.error(f"Failed to log audit entry due to DB error: {db_error}")
        db.session.rollback()

    log = current_app.audit_logger.info if success else current_app.audit_logger.warning
    log(f"Action='{action}', Resource='{resource}', ResourceID='{resource_id}', UserID='{user_id}', "
        f"ClinicID='{clinic_id}', Success='{success}', Details='{details}'")
