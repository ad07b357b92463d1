from .health import health_bp
from .timeslots import timeslots_bp
from .bookings import bookings_bp
from .users import users_bp
from .audit_logs import audit_bp
