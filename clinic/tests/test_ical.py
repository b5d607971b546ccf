from datetime import date, datetime, time, timedelta, timezone as dt_timezone

import pytest
from django.conf import settings
from django.utils import timezone
from icalendar import Calendar

from clinic.exceptions import CalendarSyncError
from clinic.models import Appointment
from clinic.services.ical import appointment_uid, is_own_uid, parse_feed, render_calendar

from .helpers import feed, local_dt, vevent

pytestmark = pytest.mark.django_db


def _local(day, hour=0, minute=0):
    return timezone.make_aware(datetime.combine(day, time(hour, minute)))


def _raw(*lines):
    return ('BEGIN:VCALENDAR\r\nVERSION:2.0\r\nPRODID:-//Test//EN\r\n'
            + '\r\n'.join(lines) + '\r\nEND:VCALENDAR\r\n').encode()


def test_render_calendar(doctor, specialty, monday):
    appt = Appointment.objects.create(
        doctor=doctor, specialty=specialty, start=local_dt(monday, 10), end=local_dt(monday, 10, 30),
        name='Ana López', phone='600000000', reason='Revisión',
    )
    cal = Calendar.from_ical(render_calendar([appt], 'Citas'))

    assert str(cal['X-WR-CALNAME']) == 'Citas'
    events = list(cal.walk('VEVENT'))
    assert len(events) == 1
    event = events[0]
    assert str(event['UID']) == f'appointment-{appt.id}@{settings.ICAL_UID_DOMAIN}'
    assert str(event['SUMMARY']) == 'Cita: Ana López - Medicina General'
    assert str(event['STATUS']) == 'TENTATIVE'
    assert event.decoded('DTSTART') == appt.start
    assert event.decoded('DTEND') == appt.end
    assert 'Motivo: Revisión' in str(event['DESCRIPTION'])


def test_own_uid_detection(doctor, monday):
    appt = Appointment.objects.create(doctor=doctor, start=local_dt(monday, 9), end=local_dt(monday, 9, 30))
    assert is_own_uid(appointment_uid(appt))
    assert is_own_uid(appointment_uid(appt).upper())
    assert not is_own_uid('abc123@google.com')


def test_parse_timed_event(monday):
    start, end = local_dt(monday, 10), local_dt(monday, 11)
    (event,) = parse_feed(feed(vevent('evt-1@google.com', start, end, summary='Congreso')))
    assert event.uid == 'evt-1@google.com'
    assert (event.start, event.end) == (start, end)
    assert event.summary == 'Congreso'
    assert not event.cancelled


def test_parse_all_day_event_covers_local_day():
    (event,) = parse_feed(_raw(
        'BEGIN:VEVENT', 'UID:holiday', 'DTSTART;VALUE=DATE:20261102', 'DTEND;VALUE=DATE:20261103', 'END:VEVENT',
    ))
    assert event.start == _local(date(2026, 11, 2))
    assert event.end == _local(date(2026, 11, 3))


def test_parse_all_day_event_without_end():
    (event,) = parse_feed(_raw('BEGIN:VEVENT', 'UID:holiday', 'DTSTART;VALUE=DATE:20261102', 'END:VEVENT'))
    assert event.end - event.start == timedelta(days=1)


def test_parse_floating_time_is_local_and_duration_is_used():
    (event,) = parse_feed(_raw(
        'BEGIN:VEVENT', 'UID:floating', 'DTSTART:20261102T100000', 'DURATION:PT45M', 'END:VEVENT',
    ))
    assert event.start == _local(date(2026, 11, 2), 10)
    assert event.end == _local(date(2026, 11, 2), 10, 45)


def test_parse_missing_end_uses_default_length(settings):
    settings.APPOINTMENT_DEFAULT_MINUTES = 20
    (event,) = parse_feed(_raw('BEGIN:VEVENT', 'UID:x', 'DTSTART:20261102T100000Z', 'END:VEVENT'))
    assert event.end - event.start == timedelta(minutes=20)


def test_parse_expands_recurring_series_and_skips_events_without_uid():
    utc = dt_timezone.utc
    body = _raw(
        'BEGIN:VEVENT', 'DTSTART:20261102T100000Z', 'DTEND:20261102T110000Z', 'END:VEVENT',
        'BEGIN:VEVENT', 'UID:weekly', 'DTSTART:20261102T100000Z', 'DTEND:20261102T110000Z',
        'RRULE:FREQ=WEEKLY', 'EXDATE:20261116T100000Z', 'END:VEVENT',
        'BEGIN:VEVENT', 'UID:weekly', 'RECURRENCE-ID:20261109T100000Z',
        'DTSTART:20261109T120000Z', 'DTEND:20261109T130000Z', 'END:VEVENT',
    )
    events = parse_feed(body, since=datetime(2026, 11, 1, tzinfo=utc), until=datetime(2026, 11, 28, tzinfo=utc))

    assert [e.key for e in events] == [
        'weekly#20261102T100000Z', 'weekly#20261109T100000Z', 'weekly#20261123T100000Z',
    ]
    assert {e.uid for e in events} == {'weekly'}
    # The override moves the second instance but keeps its identity.
    assert events[1].start == datetime(2026, 11, 9, 12, tzinfo=utc)
    assert events[1].end == datetime(2026, 11, 9, 13, tzinfo=utc)


def test_single_events_keep_their_uid_as_key(monday):
    (event,) = parse_feed(feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11))))
    assert event.recurrence_id is None
    assert event.key == 'evt-1'


def test_parse_cancelled_status():
    (event,) = parse_feed(_raw(
        'BEGIN:VEVENT', 'UID:gone', 'DTSTART:20261102T100000Z', 'DTEND:20261102T110000Z',
        'STATUS:CANCELLED', 'END:VEVENT',
    ))
    assert event.cancelled


def test_fingerprint_tracks_changes(monday):
    start, end = local_dt(monday, 10), local_dt(monday, 11)
    (a,) = parse_feed(feed(vevent('e', start, end)))
    (b,) = parse_feed(feed(vevent('e', start, end)))
    (c,) = parse_feed(feed(vevent('e', start, end, sequence=1)))
    (d,) = parse_feed(feed(vevent('e', start, end + timedelta(minutes=15))))
    assert a.fingerprint == b.fingerprint
    assert len({a.fingerprint, c.fingerprint, d.fingerprint}) == 3


@pytest.mark.parametrize('body', [
    b'not a calendar',
    b'',
    b'BEGIN:VEVENT\r\nUID:x\r\nDTSTART:20261102T100000Z\r\nEND:VEVENT\r\n',
])
def test_parse_rejects_non_calendars(body):
    with pytest.raises(CalendarSyncError):
        parse_feed(body)
