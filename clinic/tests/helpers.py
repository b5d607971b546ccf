"""Small builders shared by the test modules."""
from datetime import datetime, time, timedelta, timezone as dt_timezone

from django.utils import timezone


def next_weekday(weekday: int):
    """The next date strictly after today falling on ``weekday`` (0 = Monday)."""
    today = timezone.localdate()
    days = (weekday - today.weekday()) % 7 or 7
    return today + timedelta(days=days)


def local_dt(day, hour: int, minute: int = 0) -> datetime:
    return timezone.make_aware(datetime.combine(day, time(hour, minute)))


def _utc(dt: datetime) -> str:
    return dt.astimezone(dt_timezone.utc).strftime('%Y%m%dT%H%M%SZ')


def vevent(uid: str, start: datetime, end: datetime, summary: str = 'Ocupado', status: str = '', sequence: int = 0,
           rrule: str = '') -> str:
    lines = [
        'BEGIN:VEVENT',
        f'UID:{uid}',
        'DTSTAMP:20260101T000000Z',
        f'DTSTART:{_utc(start)}',
        f'DTEND:{_utc(end)}',
        f'SUMMARY:{summary}',
        f'SEQUENCE:{sequence}',
    ]
    if status:
        lines.append(f'STATUS:{status}')
    if rrule:
        lines.append(f'RRULE:{rrule}')
    lines.append('END:VEVENT')
    return '\r\n'.join(lines) + '\r\n'


def feed(*events: str) -> bytes:
    return (
        'BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//Test//Calendar//EN\r\n'
        + ''.join(events)
        + 'END:VCALENDAR\r\n'
    ).encode('utf-8')
