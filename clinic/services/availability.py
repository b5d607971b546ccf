"""
Doctor availability.

Weekly ``DoctorSchedule`` windows and dated ``DoctorException`` rows
are wall-clock times in ``settings.TIME_ZONE``; appointments are stored
as aware datetimes, so every check converts to local time first.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Tuple

from django.conf import settings
from django.utils import timezone

from clinic.models import Appointment, Doctor, DoctorException, Specialty

Window = Tuple[time, time]


def slot_minutes(specialty: Optional[Specialty]) -> int:
    """Appointment length for a specialty, falling back to the site default."""
    if specialty is not None:
        duration = getattr(specialty, 'duration', None)
        if duration is not None:
            return duration.duration
    return settings.APPOINTMENT_DEFAULT_MINUTES


def _windows(doctor: Doctor, day: date, exceptions: Iterable[DoctorException]) -> List[Window]:
    windows = [
        (s.start_time, s.end_time)
        for s in doctor.schedules.filter(day_of_week=day.weekday(), is_active=True)
    ]
    # Extra availability must name its hours; whole-day "open" rows add nothing.
    windows.extend(
        (e.start_time, e.end_time) for e in exceptions if e.is_available and not e.whole_day
    )
    return windows


def _blocked(exceptions: Iterable[DoctorException], start: time, end: time) -> bool:
    for exc in exceptions:
        if exc.is_available:
            continue
        if exc.whole_day or (exc.start_time < end and start < exc.end_time):
            return True
    return False


def is_within_availability(doctor: Doctor, start: datetime, end: datetime) -> bool:
    """True when ``[start, end)`` fits one availability window of its local day.

    The interval must not cross midnight, must lie inside an active
    weekly window (or an extra-availability exception) and must not
    touch any blocking exception on that date.
    """
    local_start = timezone.localtime(start)
    local_end = timezone.localtime(end)
    if local_start >= local_end or local_start.date() != local_end.date():
        return False
    day = local_start.date()
    s, e = local_start.time(), local_end.time()
    exceptions = list(doctor.exceptions.filter(date=day))
    if _blocked(exceptions, s, e):
        return False
    return any(ws <= s and e <= we for ws, we in _windows(doctor, day, exceptions))


def busy_intervals(doctor: Doctor, start: datetime, end: datetime, *, exclude_id: Optional[int]=None):
    """Non-cancelled appointments of ``doctor`` overlapping ``[start, end)``."""
    qs = Appointment.objects.filter(
        doctor=doctor,
        status__in=Appointment.ACTIVE_STATUSES,
        start__lt=end,
        end__gt=start,
    )
    if exclude_id is not None:
        qs = qs.exclude(id=exclude_id)
    return qs


def available_slots(doctor: Doctor, day: date, specialty: Optional[Specialty]=None) -> List[str]:
    """Free slot start times ("HH:MM") for ``doctor`` on ``day``.

    Slots step through every window by the specialty's duration; a slot
    is offered only when it fits the window completely, no blocking
    exception intersects it, nothing is booked over it and it has not
    already started.
    """
    if not doctor.active:
        return []
    tz = timezone.get_current_timezone()
    step = timedelta(minutes=slot_minutes(specialty))
    exceptions = list(doctor.exceptions.filter(date=day))
    windows = sorted(_windows(doctor, day, exceptions))
    if not windows:
        return []

    day_start = timezone.make_aware(datetime.combine(day, time.min), tz)
    day_end = day_start + timedelta(days=1)
    booked = list(busy_intervals(doctor, day_start, day_end).values_list('start', 'end'))
    now = timezone.now()

    slots: List[str] = []
    for ws, we in windows:
        cursor = timezone.make_aware(datetime.combine(day, ws), tz)
        window_end = timezone.make_aware(datetime.combine(day, we), tz)
        while cursor + step <= window_end:
            slot_end = cursor + step
            label = cursor.strftime('%H:%M')
            if (
                cursor > now
                and label not in slots
                and not _blocked(exceptions, cursor.time(), slot_end.time())
                and not any(bs < slot_end and cursor < be for bs, be in booked)
            ):
                slots.append(label)
            cursor = slot_end
    return sorted(slots)
