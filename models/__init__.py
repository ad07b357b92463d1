from .db import db
from .user import User
from .audit_log import AuditLog
from .slot import TimeSlot
from .booking import Booking
