"""
Repairs for the weak uniqueness of slot windows and for slot flags that
drifted away from booking status.
"""
from sqlalchemy import func

from models import db
from models.slot import TimeSlot
from models.booking import Booking
from services.errors import ValidationError
from services.slot_store import find_window, cancel_bookings_for_window, window_has_active_booking
from utils.audit import log_event
from utils.validation import is_valid_date, normalize_time


def find_duplicate_groups(date=None):
    q = (
        db.session.query(
            TimeSlot.date, TimeSlot.start_time, TimeSlot.end_time, func.count(TimeSlot.id)
        )
        .group_by(TimeSlot.date, TimeSlot.start_time, TimeSlot.end_time)
        .having(func.count(TimeSlot.id) > 1)
    )
    if date:
        q = q.filter(TimeSlot.date == date)
    rows = q.order_by(TimeSlot.date.asc(), TimeSlot.start_time.asc()).all()
    return [
        {"date": d, "startTime": s, "endTime": e, "count": n}
        for d, s, e, n in rows
    ]


def delete_duplicates(date, start_time, end_time):
    """
    Keep the oldest slot of the window and delete the others, cancelling the
    window's active bookings whenever a deleted duplicate was booked.

    Returns {"deleted", "deletedIds", "keptSlotId"}; nothing is deleted if
    the transaction fails.
    """
    if not date or not start_time or not end_time:
        raise ValidationError("Date, startTime, and endTime are required")
    if not is_valid_date(date):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")
    start_time = normalize_time(start_time)
    end_time = normalize_time(end_time)
    if start_time is None or end_time is None:
        raise ValidationError("Times must be HH:mm")

    group = find_window(date, start_time, end_time)
    if len(group) <= 1:
        return {
            "deleted": 0,
            "deletedIds": [],
            "keptSlotId": group[0].id if group else None,
        }

    kept, extras = group[0], group[1:]
    deleted_ids = []
    cancelled = 0
    try:
        for slot in extras:
            if slot.is_booked:
                cancelled += cancel_bookings_for_window(date, start_time, end_time)
            deleted_ids.append(slot.id)
            db.session.delete(slot)

        if cancelled:
            kept.is_booked = window_has_active_booking(date, start_time, end_time)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    log_event(
        "SLOT_DUPLICATES_DELETE",
        entity="time_slot",
        entity_id=kept.id,
        metadata={"deletedIds": deleted_ids, "bookingsCancelled": cancelled},
    )
    return {
        "deleted": len(deleted_ids),
        "deletedIds": deleted_ids,
        "keptSlotId": kept.id,
    }


def sync_slot_flags(date=None):
    """
    Recompute is_booked for every slot (optionally one date) from the
    bookings table. Returns {"checked", "fixed", "fixedIds"}.
    """
    if date and not is_valid_date(date):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")

    slots_q = TimeSlot.query
    bookings_q = Booking.query.filter(Booking.status != "cancelled")
    if date:
        slots_q = slots_q.filter_by(date=date)
        bookings_q = bookings_q.filter(Booking.booking_date == date)

    active = {(b.booking_date, b.start_time, b.end_time) for b in bookings_q.all()}

    slots = slots_q.order_by(TimeSlot.date.asc(), TimeSlot.start_time.asc(), TimeSlot.id.asc()).all()
    fixed_ids = []
    for slot in slots:
        expected = slot.window in active
        if slot.is_booked != expected:
            slot.is_booked = expected
            fixed_ids.append(slot.id)

    if fixed_ids:
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log_event("SLOT_FLAGS_SYNC", entity="time_slot", metadata={"fixedIds": fixed_ids})

    return {"checked": len(slots), "fixed": len(fixed_ids), "fixedIds": fixed_ids}
