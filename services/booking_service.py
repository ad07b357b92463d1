"""
Booking lifecycle: the only writer of bookings, and the only place that
flips TimeSlot.is_booked together with booking status.

Bookings and slots are related by their (date, start_time, end_time)
window, not by a stored slot id.
"""
from datetime import datetime
from sqlalchemy.exc import IntegrityError

from models import db
from models.slot import TimeSlot
from models.booking import Booking
from models.user import User
from services.errors import ValidationError, NotFound, Conflict
from services import users
from services.slot_store import window_has_active_booking
from utils.audit import log_event
from utils.validation import is_valid_date

# request value -> persisted value
STATUS_ALIASES = {
    "pending": "pending",
    "confirmed": "confirmed",
    "canceled": "cancelled",
    "cancelled": "cancelled",
}
VALID_REQUEST_STATUSES = ("pending", "confirmed", "canceled")


def _active_bookings_for_window(date, start_time, end_time):
    return Booking.query.filter(
        Booking.booking_date == date,
        Booking.start_time == start_time,
        Booking.end_time == end_time,
        Booking.status != "cancelled",
    )


def create_booking(slot_id: int, user_ref: str) -> Booking:
    slot = db.session.get(TimeSlot, slot_id)
    if not slot:
        raise NotFound("Time slot not found")

    if slot.is_booked:
        log_event("BOOKING_FAIL_ALREADY_BOOKED", entity="time_slot", entity_id=slot_id)
        raise Conflict("This time slot is already booked")

    date, start_time, end_time = slot.window
    try:
        user = users.resolve_or_create(user_ref)

        duplicate = _active_bookings_for_window(date, start_time, end_time).filter(
            Booking.user_id == user.id
        ).first()
        if duplicate:
            raise Conflict("You already have a booking for this slot")

        # duplicate slot rows share one window; any active booking holds it
        if _active_bookings_for_window(date, start_time, end_time).first():
            raise Conflict("This time slot is already booked")

        # Claim the slot with one conditional update; a concurrent request
        # that already passed the is_booked check above loses here.
        claimed = (
            TimeSlot.query
            .filter_by(id=slot.id, is_booked=False)
            .update({TimeSlot.is_booked: True}, synchronize_session=False)
        )
        if claimed != 1:
            raise Conflict("This time slot is already booked")

        booking = Booking(
            user_id=user.id,
            booking_date=date,
            start_time=start_time,
            end_time=end_time,
            status="booked",
        )
        db.session.add(booking)
        db.session.commit()
    except Conflict as err:
        db.session.rollback()
        log_event("BOOKING_FAIL_CONFLICT", entity="time_slot", entity_id=slot_id, metadata={"reason": err.message})
        raise
    except IntegrityError:
        db.session.rollback()
        raise Conflict("This time slot is already booked")
    except Exception:
        db.session.rollback()
        raise

    log_event(
        "BOOKING_CREATE",
        user_id=booking.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"timeSlotId": slot_id},
    )
    return booking


def update_booking_status(booking_id: int, new_status) -> Booking:
    status = STATUS_ALIASES.get(new_status) if isinstance(new_status, str) else None
    if status is None:
        raise ValidationError(f"Status must be one of: {', '.join(VALID_REQUEST_STATUSES)}")

    booking = db.session.get(Booking, booking_id)
    if not booking:
        raise NotFound("Booking not found")

    previous = booking.status
    if previous == "cancelled":
        # the window may have been re-booked since
        if status != "cancelled":
            raise Conflict("Cancelled bookings cannot be reactivated")
        return booking

    try:
        booking.status = status
        booking.updated_at = datetime.utcnow()
        db.session.flush()
        if status == "cancelled" and not window_has_active_booking(
            booking.booking_date, booking.start_time, booking.end_time
        ):
            # free every slot with this window, duplicates included
            (
                TimeSlot.query
                .filter_by(
                    date=booking.booking_date,
                    start_time=booking.start_time,
                    end_time=booking.end_time,
                )
                .update({TimeSlot.is_booked: False}, synchronize_session=False)
            )
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_event(
        "BOOKING_STATUS_UPDATE",
        user_id=booking.user_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"from": previous, "to": status},
    )
    return booking


def list_bookings(user_id=None, user_ref=None, date=None, slot_id=None):
    q = Booking.query
    if user_id is not None:
        q = q.filter(Booking.user_id == user_id)
    if user_ref:
        q = q.join(User, Booking.user_id == User.id).filter(User.external_id == user_ref)
    if date:
        if not is_valid_date(date):
            raise ValidationError("Invalid date format. Use YYYY-MM-DD")
        q = q.filter(Booking.booking_date == date)

    bookings = q.order_by(Booking.booking_date.desc(), Booking.start_time.asc(), Booking.id.asc()).all()

    if slot_id is not None:
        slot = db.session.get(TimeSlot, slot_id)
        if not slot:
            return []
        bookings = [
            b for b in bookings
            if (b.booking_date, b.start_time, b.end_time) == slot.window and b.status != "cancelled"
        ]
    return bookings
