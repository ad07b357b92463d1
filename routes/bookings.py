from flask import Blueprint, request, jsonify

from models.booking import Booking
from routes.users import user_json
from security.rbac import admin_denied
from services import booking_service
from services.errors import ValidationError

bookings_bp = Blueprint("bookings", __name__, url_prefix="/bookings")

def booking_json(b: Booking):
    return {
        "id": b.id,
        "user": user_json(b.user),
        "bookingDate": b.booking_date,
        "startTime": b.start_time,
        "endTime": b.end_time,
        "status": b.status,
        "createdAt": b.created_at.isoformat() if b.created_at else None,
        "updatedAt": b.updated_at.isoformat() if b.updated_at else None,
    }


@bookings_bp.get("")
def list_bookings():
    # optional filters: userId, userRef, date (YYYY-MM-DD), timeSlotId
    rows = booking_service.list_bookings(
        user_id=request.args.get("userId", type=int),
        user_ref=request.args.get("userRef"),
        date=request.args.get("date"),
        slot_id=request.args.get("timeSlotId", type=int),
    )
    return jsonify(bookings=[booking_json(b) for b in rows]), 200


@bookings_bp.post("")
def create_booking():
    data = request.get_json(silent=True) or {}
    slot_id = data.get("timeSlotId")
    user_ref = data.get("userRef") or data.get("clerkId")

    if not slot_id:
        raise ValidationError("Time slot ID is required")
    if not user_ref:
        raise ValidationError("User reference is required")
    try:
        slot_id = int(slot_id)
    except (TypeError, ValueError):
        raise ValidationError("Time slot ID must be an integer")

    booking = booking_service.create_booking(slot_id, str(user_ref))
    return jsonify(message="Booking created successfully", booking=booking_json(booking)), 201


@bookings_bp.patch("/<int:booking_id>")
def update_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = data.get("status")

    # users may cancel; confirming or reopening is an admin action
    if status not in ("canceled", "cancelled"):
        failure = admin_denied()
        if failure:
            return failure

    booking = booking_service.update_booking_status(booking_id, status)
    return jsonify(message="Booking updated successfully", booking=booking_json(booking)), 200
