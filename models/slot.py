from datetime import datetime
from models.db import db

class TimeSlot(db.Model):
    __tablename__ = "time_slots"

    id = db.Column(db.Integer, primary_key=True)

    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM, zero-padded
    end_time = db.Column(db.String(5), nullable=False)

    is_booked = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # Not unique: racing batch creations may insert the same window twice,
        # see services.reconciliation.delete_duplicates
        db.Index("ix_time_slots_window", "date", "start_time", "end_time"),
    )

    @property
    def window(self):
        return self.date, self.start_time, self.end_time
