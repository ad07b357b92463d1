from flask import Blueprint, request, jsonify, current_app

from models.slot import TimeSlot
from security.rbac import require_admin
from services import slot_store, reconciliation
from services.errors import ValidationError
from services.slot_generator import generate_daily_slots

timeslots_bp = Blueprint("timeslots", __name__, url_prefix="/timeslots")

def slot_json(s: TimeSlot):
    return {
        "id": s.id,
        "date": s.date,
        "startTime": s.start_time,
        "endTime": s.end_time,
        "isBooked": s.is_booked,
        "createdAt": s.created_at.isoformat() if s.created_at else None,
    }

def _int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


@timeslots_bp.get("")
def list_timeslots():
    # optional filter: date (YYYY-MM-DD)
    slots = slot_store.list_slots(request.args.get("date"))
    return jsonify(slots=[slot_json(s) for s in slots]), 200


# ---------- Preview a day's windows before creating them ----------
@timeslots_bp.get("/generate")
def preview_generated():
    date = request.args.get("date")
    if not date:
        raise ValidationError("date is required")

    cfg = current_app.config
    candidates = generate_daily_slots(
        date,
        start_hour=_int_arg("startHour", cfg["SLOT_DAY_START_HOUR"]),
        end_hour=_int_arg("endHour", cfg["SLOT_DAY_END_HOUR"]),
        lesson_duration_minutes=_int_arg("lessonMinutes", cfg["SLOT_LESSON_MINUTES"]),
        break_duration_minutes=_int_arg("breakMinutes", cfg["SLOT_BREAK_MINUTES"]),
    )

    existing = {s.window for s in slot_store.list_slots(date)}
    for c in candidates:
        c["exists"] = (c["date"], c["startTime"], c["endTime"]) in existing
    return jsonify(slots=candidates), 200


# ---------- ADMIN: create slots in bulk ----------
@timeslots_bp.post("")
@require_admin
def create_timeslots():
    data = request.get_json(silent=True) or {}
    created = slot_store.create_batch(data.get("slots"))
    if not created:
        return jsonify(error="All slots already exist"), 400

    return jsonify(
        message=f"Created {len(created)} time slot(s)",
        slots=[slot_json(s) for s in created],
    ), 201


# ---------- ADMIN: reconcile duplicate windows ----------
@timeslots_bp.delete("/duplicates/<date>/<start_time>/<end_time>")
@require_admin
def delete_duplicate_timeslots(date, start_time, end_time):
    result = reconciliation.delete_duplicates(date, start_time, end_time)
    if result["deleted"] == 0:
        return jsonify(message="No duplicates found", **result), 200

    return jsonify(message=f"Deleted {result['deleted']} duplicate slot(s)", **result), 200


# ---------- ADMIN: delete slot (cancels its bookings) ----------
@timeslots_bp.delete("/<int:slot_id>")
@require_admin
def delete_timeslot(slot_id: int):
    cancelled = slot_store.delete_slot(slot_id)
    return jsonify(message="Time slot deleted successfully", bookingsCancelled=cancelled), 200
