# Import every model so db.create_all() and Flask-Migrate see the full schema.
from clinic_chat.models.clinic_models import Clinic
from clinic_chat.models.user_models import User
from clinic_chat.models.patient_models import Patient
from clinic_chat.models.chat_models import Conversation, Message
from clinic_chat.models.system_models import AuditLog
