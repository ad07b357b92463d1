from datetime import datetime
from sqlalchemy.exc import IntegrityError

from models import db
from models.slot import TimeSlot
from models.booking import Booking
from services.errors import ValidationError, NotFound, Conflict
from services.slot_generator import validate_slot
from utils.validation import is_valid_date, normalize_time
from utils.audit import log_event


def list_slots(date=None):
    q = TimeSlot.query
    if date:
        if not is_valid_date(date):
            raise ValidationError("Invalid date format. Use YYYY-MM-DD")
        q = q.filter_by(date=date)
    return q.order_by(TimeSlot.date.asc(), TimeSlot.start_time.asc(), TimeSlot.id.asc()).all()


def find_window(date: str, start_time: str, end_time: str):
    """All slots sharing one window, oldest first."""
    return (
        TimeSlot.query
        .filter_by(date=date, start_time=start_time, end_time=end_time)
        .order_by(TimeSlot.created_at.asc(), TimeSlot.id.asc())
        .all()
    )


def window_has_active_booking(date: str, start_time: str, end_time: str) -> bool:
    return db.session.query(
        Booking.query.filter(
            Booking.booking_date == date,
            Booking.start_time == start_time,
            Booking.end_time == end_time,
            Booking.status != "cancelled",
        ).exists()
    ).scalar()


def cancel_bookings_for_window(date: str, start_time: str, end_time: str) -> int:
    """Mark every active booking of the window cancelled. Caller commits."""
    return (
        Booking.query
        .filter(
            Booking.booking_date == date,
            Booking.start_time == start_time,
            Booking.end_time == end_time,
            Booking.status != "cancelled",
        )
        .update(
            {Booking.status: "cancelled", Booking.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
    )


def create_batch(entries):
    """
    Persist the given windows as free slots.

    Entries whose window already exists (in the database or earlier in the
    same batch) are skipped. Only a malformed entry fails the whole batch.
    Returns the slots actually created, possibly an empty list.
    """
    if not isinstance(entries, list) or not entries:
        raise ValidationError("Slots array is required")

    windows = []
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("date") or not entry.get("startTime") or not entry.get("endTime"):
            raise ValidationError("Each slot must have date, startTime, and endTime")
        if not validate_slot(entry):
            raise ValidationError(
                "Invalid slot: date must be YYYY-MM-DD, times HH:mm and endTime after startTime"
            )
        windows.append((entry["date"], normalize_time(entry["startTime"]), normalize_time(entry["endTime"])))

    seen = set()
    created = []
    for date, start_time, end_time in windows:
        key = (date, start_time, end_time)
        if key in seen:
            continue
        seen.add(key)

        existing = TimeSlot.query.filter_by(date=date, start_time=start_time, end_time=end_time).first()
        if existing:
            continue

        slot = TimeSlot(date=date, start_time=start_time, end_time=end_time, is_booked=False)
        db.session.add(slot)
        created.append(slot)

    if not created:
        return []

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Some slots already exist")

    log_event(
        "SLOT_BATCH_CREATE",
        entity="time_slot",
        metadata={"created": len(created), "requested": len(entries)},
    )
    return created


def delete_slot(slot_id: int) -> int:
    """
    Remove a slot. If it is booked, the active bookings of its window are
    cancelled in the same transaction. Returns the number cancelled.
    """
    slot = db.session.get(TimeSlot, slot_id)
    if not slot:
        raise NotFound("Time slot not found")

    date, start_time, end_time = slot.window
    cancelled = 0
    try:
        if slot.is_booked:
            cancelled = cancel_bookings_for_window(date, start_time, end_time)
        db.session.delete(slot)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_event(
        "SLOT_DELETE",
        entity="time_slot",
        entity_id=slot_id,
        metadata={"date": date, "startTime": start_time, "endTime": end_time, "bookingsCancelled": cancelled},
    )
    return cancelled
