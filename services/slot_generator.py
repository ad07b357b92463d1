"""
Candidate lesson windows for one teaching day.

Pure functions only: nothing here reads or writes the database, callers
diff the result against persisted slots themselves.
"""
from typing import Dict, List

from services.errors import ValidationError
from utils.validation import is_valid_date, normalize_time, to_minutes, from_minutes


def generate_daily_slots(
    date: str,
    start_hour: int = 6,
    end_hour: int = 19,
    lesson_duration_minutes: int = 40,
    break_duration_minutes: int = 20,
) -> List[Dict[str, str]]:
    """
    Windows start at start_hour:00 and repeat every lesson + break minutes.
    A window is kept only if it ends at or before end_hour:00; generation
    stops at the first window that would overrun. With end_hour=24 the
    last window must end by 23:59.

    generate_daily_slots("2025-03-10", 8, 18, 40, 20)
      -> 08:00-08:40, 09:00-09:40, ..., 17:00-17:40
    """
    if not is_valid_date(date):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")
    if not (0 <= start_hour <= 24 and 0 <= end_hour <= 24):
        raise ValidationError("Hours must be between 0 and 24")
    if start_hour >= end_hour:
        raise ValidationError("startHour must be before endHour")
    if lesson_duration_minutes <= 0 or break_duration_minutes <= 0:
        raise ValidationError("Lesson and break durations must be positive")

    # stored times stop at 23:59, so a window may not end at midnight
    day_end = min(end_hour * 60, 24 * 60 - 1)
    step = lesson_duration_minutes + break_duration_minutes

    slots = []
    start = start_hour * 60
    while start + lesson_duration_minutes <= day_end:
        slots.append({
            "date": date,
            "startTime": from_minutes(start),
            "endTime": from_minutes(start + lesson_duration_minutes),
        })
        start += step
    return slots


def format_time(hhmm: str) -> str:
    """Render HH:MM on a 12-hour clock, e.g. 13:05 as 1:05 PM."""
    hours, minutes = (int(part) for part in hhmm.split(":"))
    hour12 = hours % 12 or 12
    ampm = "AM" if hours < 12 else "PM"
    return f"{hour12}:{minutes:02d} {ampm}"


def validate_slot(entry) -> bool:
    if not isinstance(entry, dict):
        return False
    if not entry.get("date") or not entry.get("startTime") or not entry.get("endTime"):
        return False
    if not is_valid_date(entry["date"]):
        return False

    start = normalize_time(entry["startTime"])
    end = normalize_time(entry["endTime"])
    if start is None or end is None:
        return False
    return to_minutes(end) > to_minutes(start)
