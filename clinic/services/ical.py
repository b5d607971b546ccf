"""
iCalendar (RFC 5545) rendering and parsing.

Internal appointments are published with UIDs of the form
``appointment-<id>@<ICAL_UID_DOMAIN>`` so that a feed we pushed out and
later read back can be recognised and ignored.
"""
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone as dt_timezone
from typing import Iterable, List, Optional, Union

import recurring_ical_events
from django.conf import settings
from django.utils import timezone
from icalendar import Calendar, Event

from clinic.exceptions import CalendarSyncError
from clinic.models import Appointment

logger = logging.getLogger(__name__)

STATUS_TO_ICAL = {
    Appointment.STATUS_CONFIRMED: 'CONFIRMED',
    Appointment.STATUS_COMPLETED: 'CONFIRMED',
    Appointment.STATUS_CANCELLED: 'CANCELLED',
    Appointment.STATUS_PENDING: 'TENTATIVE',
}


@dataclass(frozen=True)
class ExternalEvent:
    uid: str
    start: datetime
    end: datetime
    summary: str
    status: str
    fingerprint: str
    recurrence_id: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        return self.status == 'CANCELLED'

    @property
    def key(self) -> str:
        """Identity of the event in the feed; one per occurrence of a series."""
        return f'{self.uid}#{self.recurrence_id}' if self.recurrence_id else self.uid


def appointment_uid(appointment: Appointment) -> str:
    return f"appointment-{appointment.id}@{settings.ICAL_UID_DOMAIN}"


def is_own_uid(uid: str) -> bool:
    return uid.lower().endswith('@' + settings.ICAL_UID_DOMAIN.lower())


def _summary(a: Appointment) -> str:
    who = a.name or (a.patient.full_name if a.patient_id else '') or 'Cita'
    summary = f"Cita: {who}"
    if a.specialty_id:
        summary += f" - {a.specialty.name}"
    return summary


def _description(a: Appointment) -> str:
    lines = [f"Paciente: {a.name}"] if a.name else []
    if a.phone:
        lines.append(f"Teléfono: {a.phone}")
    if a.reason:
        lines.append(f"Motivo: {a.reason}")
    if a.doctor_id:
        lines.append(f"Doctor: {a.doctor.name}")
    if a.insurance:
        lines.append(f"Seguro: {a.insurance}")
    if a.notes:
        lines.append(f"Notas: {a.notes}")
    lines.append(f"Estado: {a.status}")
    return "\n".join(lines)


def render_calendar(appointments: Iterable[Appointment], name: str, description: str = '') -> bytes:
    """Render ``appointments`` as a VCALENDAR with one VEVENT each."""
    cal = Calendar()
    cal.add('prodid', settings.ICAL_PRODID)
    cal.add('version', '2.0')
    cal.add('calscale', 'GREGORIAN')
    cal.add('method', 'PUBLISH')
    cal.add('x-wr-calname', name)
    if description:
        cal.add('x-wr-caldesc', description)
    cal.add('x-wr-timezone', settings.TIME_ZONE)

    stamp = timezone.now().astimezone(dt_timezone.utc)
    for a in appointments:
        event = Event()
        event.add('uid', appointment_uid(a))
        event.add('dtstamp', stamp)
        event.add('dtstart', a.start.astimezone(dt_timezone.utc))
        event.add('dtend', a.end.astimezone(dt_timezone.utc))
        event.add('summary', _summary(a))
        event.add('description', _description(a))
        event.add('location', settings.ICAL_LOCATION)
        event.add('status', STATUS_TO_ICAL.get(a.status, 'TENTATIVE'))
        if a.created_at:
            event.add('created', a.created_at.astimezone(dt_timezone.utc))
        if a.updated_at:
            event.add('last-modified', a.updated_at.astimezone(dt_timezone.utc))
        cal.add_component(event)
    return cal.to_ical()


def _aware(value: Union[date, datetime]) -> datetime:
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if timezone.is_naive(value):
        # Floating times are read as clinic local time.
        value = timezone.make_aware(value, timezone.get_default_timezone())
    return value


def _stamp(value: Union[date, datetime]) -> str:
    return _aware(value).astimezone(dt_timezone.utc).strftime('%Y%m%dT%H%M%SZ')


def _fingerprint(key: str, start: datetime, end: datetime, status: str, component) -> str:
    parts = [
        key,
        start.isoformat(),
        end.isoformat(),
        status,
        str(component.get('SEQUENCE', '')),
        component.decoded('LAST-MODIFIED').isoformat() if component.get('LAST-MODIFIED') else '',
    ]
    return hashlib.sha256('|'.join(parts).encode('utf-8')).hexdigest()


def _event_from_component(component, *, occurrence: bool=False) -> ExternalEvent | None:
    uid = str(component.get('UID') or '').strip()
    if not uid or component.get('DTSTART') is None:
        logger.debug('Skipping VEVENT without UID or DTSTART')
        return None

    raw_start = component.decoded('DTSTART')
    all_day = not isinstance(raw_start, datetime)
    start = _aware(raw_start)
    if component.get('DTEND') is not None:
        end = _aware(component.decoded('DTEND'))
    elif component.get('DURATION') is not None:
        end = start + component.decoded('DURATION')
    elif all_day:
        end = _aware(raw_start + timedelta(days=1))
    else:
        end = start + timedelta(minutes=settings.APPOINTMENT_DEFAULT_MINUTES)
    if end <= start:
        end = start + timedelta(minutes=settings.APPOINTMENT_DEFAULT_MINUTES)

    recurrence_id = None
    if occurrence:
        # Moved instances keep the RECURRENCE-ID of the slot they replace.
        rid = component.decoded('RECURRENCE-ID') if component.get('RECURRENCE-ID') is not None else raw_start
        recurrence_id = _stamp(rid)

    status = str(component.get('STATUS') or 'CONFIRMED').upper()
    summary = str(component.get('SUMMARY') or '')
    key = f'{uid}#{recurrence_id}' if recurrence_id else uid
    return ExternalEvent(
        uid=uid,
        start=start,
        end=end,
        summary=summary,
        status=status,
        fingerprint=_fingerprint(key, start, end, status, component),
        recurrence_id=recurrence_id,
    )


def _is_recurring(component) -> bool:
    return any(component.get(prop) is not None for prop in ('RRULE', 'RDATE', 'RECURRENCE-ID'))


def _expand(series: List, since: datetime, until: datetime) -> List:
    """Occurrences of the recurring ``series`` components between ``since`` and ``until``."""
    cal = Calendar()
    for component in series:
        cal.add_component(component)
    try:
        return list(recurring_ical_events.of(cal, skip_bad_series=True).between(since, until))
    except (ValueError, TypeError, KeyError) as e:
        logger.warning('Skipping recurring events that could not be expanded: %s', e)
        return []


def parse_feed(raw: Union[bytes, str], *, since: Optional[datetime]=None,
               until: Optional[datetime]=None) -> List[ExternalEvent]:
    """Parse an iCalendar document into :class:`ExternalEvent` items.

    All-day events cover the whole local day, a missing DTEND falls back
    to DURATION or the default appointment length and naive times are
    taken in ``TIME_ZONE``.  Recurring series (RRULE, RDATE and their
    RECURRENCE-ID overrides) are expanded into one event per occurrence
    between ``since`` and ``until``, which default to the sync lookback
    and ``ICAL_SYNC_HORIZON_DAYS`` ahead.  Raises ``CalendarSyncError``
    when the data is not a calendar.
    """
    try:
        cal = Calendar.from_ical(raw)
    except (ValueError, TypeError, IndexError, KeyError) as e:
        raise CalendarSyncError(f'invalid iCalendar data: {e}') from e
    if getattr(cal, 'name', None) != 'VCALENDAR':
        raise CalendarSyncError('feed is not a VCALENDAR')

    now = timezone.now()
    since = since or now - timedelta(days=settings.ICAL_SYNC_LOOKBACK_DAYS)
    until = until or now + timedelta(days=settings.ICAL_SYNC_HORIZON_DAYS)

    single, series = [], []
    for component in cal.walk('VEVENT'):
        if not str(component.get('UID') or '').strip() or component.get('DTSTART') is None:
            logger.debug('Skipping VEVENT without UID or DTSTART')
            continue
        (series if _is_recurring(component) else single).append(component)

    candidates = [(c, False) for c in single]
    if series:
        candidates.extend((c, True) for c in _expand(series, since, until))

    events: List[ExternalEvent] = []
    seen = set()
    for component, occurrence in candidates:
        try:
            event = _event_from_component(component, occurrence=occurrence)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning('Skipping malformed VEVENT %s: %s', component.get('UID'), e)
            continue
        if event is None or event.key in seen:
            continue
        seen.add(event.key)
        events.append(event)
    events.sort(key=lambda e: (e.start, e.key))
    return events
