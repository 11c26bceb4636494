# glam/availability.py
"""
Availability computations over an artist's working hours, blocked dates and
existing bookings.

Weekdays use the 0=Sunday convention throughout (``day_of_week`` column).
Nothing here touches the database: callers fetch the rows and pass them in.
"""

from datetime import date, datetime, time, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .config import settings
from .schemas import AvailabilityPublic, TodayHours

ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")

Interval = Tuple[datetime, datetime]


def today_weekday(day: date) -> int:
    # isoweekday: Mon=1 ... Sun=7
    return day.isoweekday() % 7


def parse_time(value: str) -> time:
    return time.fromisoformat(value)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def today_hours(row) -> TodayHours:
    return TodayHours(
        start=row.start_time or settings.DEFAULT_START_TIME,
        end=row.end_time or settings.DEFAULT_END_TIME,
    )


def resolve_availability(artist_id: str, row) -> AvailabilityPublic:
    """Today-availability of one artist from the row for today's weekday (or None)."""
    if row is None or not row.is_working:
        return AvailabilityPublic(artist_id=artist_id, is_available_today=False, today_hours=None)
    return AvailabilityPublic(artist_id=artist_id, is_available_today=True, today_hours=today_hours(row))


def resolve_bulk_availability(artist_ids: Iterable[str], rows: Iterable) -> Dict[str, AvailabilityPublic]:
    """Today-availability for many artists.

    Every requested id gets an entry, unavailable until a working row for it
    is overlaid. Rows for ids that were not requested are ignored.
    """
    result = {
        artist_id: AvailabilityPublic(artist_id=artist_id, is_available_today=False, today_hours=None)
        for artist_id in artist_ids
    }
    for row in rows:
        if row.artist_id in result and row.is_working:
            result[row.artist_id] = resolve_availability(row.artist_id, row)
    return result


def working_window(day: date, row) -> Optional[Interval]:
    if row is None or not row.is_working:
        return None
    hours = today_hours(row)
    start = datetime.combine(day, parse_time(hours.start))
    end = datetime.combine(day, parse_time(hours.end))
    if start >= end:
        return None
    return start, end


def booked_intervals(
    day: date,
    bookings: Iterable,
    durations: Mapping[str, int] = None,
    default_minutes: int = settings.SLOT_MINUTES,
) -> List[Interval]:
    """Intervals taken by active bookings on ``day``.

    A booking lasts as long as its service when the duration is known,
    otherwise one slot.
    """
    durations = durations or {}
    intervals = []
    for b in bookings:
        if b.booking_date != day or b.status not in ACTIVE_BOOKING_STATUSES:
            continue
        start = datetime.combine(day, parse_time(b.booking_time))
        minutes = durations.get(b.service_id, default_minutes)
        intervals.append((start, start + timedelta(minutes=minutes)))
    return intervals


def is_bookable(
    day: date,
    at: str,
    row,
    blocked_dates: Iterable[date],
    bookings: Iterable,
    duration_minutes: Optional[int] = None,
    durations: Mapping[str, int] = None,
) -> bool:
    """Whether a booking may start on ``day`` at ``at``.

    ``row`` is the artist's working-hours row for that weekday (or None).
    """
    if day in set(blocked_dates):
        return False
    window = working_window(day, row)
    if window is None:
        return False
    work_start, work_end = window

    start = datetime.combine(day, parse_time(at))
    end = start + timedelta(minutes=duration_minutes or 0)
    if start < work_start or start >= work_end or end > work_end:
        return False

    for busy_start, busy_end in booked_intervals(day, bookings, durations):
        if duration_minutes:
            if overlaps(start, end, busy_start, busy_end):
                return False
        elif busy_start <= start < busy_end:
            return False
    return True


def open_slots(
    day: date,
    row,
    blocked_dates: Iterable[date],
    bookings: Iterable,
    slot_minutes: int = settings.SLOT_MINUTES,
    duration_minutes: Optional[int] = None,
    durations: Mapping[str, int] = None,
) -> List[str]:
    """Start times ("HH:MM") still free on ``day``, on a ``slot_minutes`` grid."""
    if day in set(blocked_dates):
        return []
    window = working_window(day, row)
    if window is None:
        return []
    work_start, work_end = window

    slot_delta = timedelta(minutes=slot_minutes)
    length = timedelta(minutes=duration_minutes or slot_minutes)
    busy = booked_intervals(day, bookings, durations, slot_minutes)

    available = []
    current = work_start
    while current + length <= work_end:
        if not any(overlaps(current, current + length, s, e) for s, e in busy):
            available.append(current.strftime("%H:%M"))
        current += slot_delta
    return available
