from datetime import datetime
from models.db import db

class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    # identity issued by the external auth provider
    external_id = db.Column(db.String(255), unique=True, nullable=False, index=True)

    first_name = db.Column(db.String(120), nullable=True)
    last_name = db.Column(db.String(120), nullable=True)
    user_name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    photo = db.Column(db.String(512), nullable=True)

    # lesson fee settled (toggled from the admin payments page)
    is_paid = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    bookings = db.relationship("Booking", back_populates="user")
