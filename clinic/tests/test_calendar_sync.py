"""
Calendar sync against a stubbed external feed.

``requests`` is monkeypatched on the sync module so no network is used.
"""
from datetime import timedelta, timezone as dt_timezone

import pytest
import requests
from django.core.cache import cache
from django.db import DatabaseError
from django.utils import timezone

from clinic.exceptions import ConflictError
from clinic.models import Appointment, CalendarSyncRecord, CalendarSyncRun, Doctor
from clinic.services import calendar_sync
from clinic.services.appointments import create_appointment
from clinic.services.calendar_sync import CONFLICT_REASON, REMOVED_REASON, sync_all, sync_doctor
from clinic.services.ical import appointment_uid

from .helpers import feed, local_dt, vevent

pytestmark = pytest.mark.django_db

FEED_URL = 'https://calendar.example.com/dr-perez.ics'


class FakeResponse:
    def __init__(self, content=b'', status_code=200):
        self.content = content
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} error')


@pytest.fixture
def synced_doctor(doctor):
    doctor.external_calendar_url = FEED_URL
    doctor.save()
    return doctor


@pytest.fixture
def serve(monkeypatch):
    """Serve the given iCal bytes for every GET; returns the list of requested URLs."""
    state = {'body': feed(), 'calls': []}

    def fake_get(url, **kwargs):
        state['calls'].append(url)
        return FakeResponse(state['body'])

    monkeypatch.setattr(calendar_sync.requests, 'get', fake_get)

    def set_body(body):
        state['body'] = body
        return state['calls']
    return set_body


def _imported(doctor):
    return Appointment.objects.filter(doctor=doctor, source=Appointment.SOURCE_EXTERNAL_ICAL)


def test_import_creates_confirmed_external_appointment(synced_doctor, serve, monday):
    calls = serve(feed(vevent('evt-1@google.com', local_dt(monday, 10), local_dt(monday, 11), summary='Congreso')))
    run = sync_doctor(synced_doctor)

    assert calls == [FEED_URL]
    assert run.status == CalendarSyncRun.STATUS_SUCCESS
    assert run.created == 1
    appt = _imported(synced_doctor).get()
    assert appt.status == Appointment.STATUS_CONFIRMED
    assert appt.external_event_id == 'evt-1@google.com'
    assert (appt.start, appt.end) == (local_dt(monday, 10), local_dt(monday, 11))
    assert appt.name == 'Congreso'
    assert CalendarSyncRecord.objects.get(doctor=synced_doctor).appointment_id == appt.id


def test_sync_is_idempotent(synced_doctor, serve, monday):
    serve(feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11))))
    sync_doctor(synced_doctor)
    second = sync_doctor(synced_doctor)

    assert _imported(synced_doctor).count() == 1
    assert CalendarSyncRecord.objects.count() == 1
    assert (second.created, second.updated, second.unchanged) == (0, 0, 1)


def test_external_event_wins_over_internal_booking(synced_doctor, serve, monday):
    internal = create_appointment({
        'doctor_id': synced_doctor.id, 'start': local_dt(monday, 10), 'end': local_dt(monday, 10, 30),
        'name': 'Ana López', 'email': 'ana@example.com',
    })
    other = create_appointment({
        'doctor_id': synced_doctor.id, 'start': local_dt(monday, 11), 'end': local_dt(monday, 11, 30),
        'name': 'Luis Mora', 'email': 'luis@example.com',
    })
    serve(feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11))))
    run = sync_doctor(synced_doctor)

    internal.refresh_from_db()
    other.refresh_from_db()
    assert internal.status == Appointment.STATUS_CANCELLED
    assert internal.cancel_reason == CONFLICT_REASON
    assert other.status == Appointment.STATUS_PENDING
    assert run.conflicts == 1
    assert _imported(synced_doctor).get().status == Appointment.STATUS_CONFIRMED


def test_overlapping_external_events_keep_the_first(synced_doctor, serve, monday):
    serve(feed(
        vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11)),
        vevent('evt-2', local_dt(monday, 10, 30), local_dt(monday, 11, 30)),
    ))
    run = sync_doctor(synced_doctor)
    assert [a.external_event_id for a in _imported(synced_doctor)] == ['evt-1']
    assert (run.created, run.conflicts) == (1, 1)


def test_recurring_event_blocks_every_occurrence(synced_doctor, serve, monday):
    start = local_dt(monday, 10).astimezone(dt_timezone.utc)
    serve(feed(vevent('weekly@google.com', start, start + timedelta(hours=1), rrule='FREQ=WEEKLY;COUNT=4')))
    run = sync_doctor(synced_doctor)

    imported = list(_imported(synced_doctor))
    assert run.created == 4
    assert [a.start for a in imported] == [start + timedelta(weeks=i) for i in range(4)]
    assert len({a.external_event_id for a in imported}) == 4
    assert all(a.external_event_id.startswith('weekly@google.com#') for a in imported)

    second = start + timedelta(weeks=1, minutes=15)
    with pytest.raises(ConflictError):
        create_appointment({
            'doctor_id': synced_doctor.id, 'start': second, 'end': second + timedelta(minutes=30),
            'name': 'Ana López', 'email': 'ana@example.com',
        })

    again = sync_doctor(synced_doctor)
    assert (again.created, again.updated, again.unchanged) == (0, 0, 4)
    assert CalendarSyncRecord.objects.filter(doctor=synced_doctor).count() == 4


def test_removed_event_cancels_and_reappearing_event_restores(synced_doctor, serve, monday):
    event = vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11))
    serve(feed(event))
    sync_doctor(synced_doctor)

    serve(feed())
    run = sync_doctor(synced_doctor)
    appt = _imported(synced_doctor).get()
    assert run.cancelled == 1
    assert appt.status == Appointment.STATUS_CANCELLED
    assert appt.cancel_reason == REMOVED_REASON

    serve(feed(event))
    run = sync_doctor(synced_doctor)
    appt.refresh_from_db()
    assert run.updated == 1
    assert appt.status == Appointment.STATUS_CONFIRMED
    assert appt.cancel_reason == ''


def test_cancelled_status_in_feed(synced_doctor, serve, monday):
    serve(feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11))))
    sync_doctor(synced_doctor)
    serve(feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11), status='CANCELLED', sequence=1)))
    run = sync_doctor(synced_doctor)

    assert run.cancelled == 1
    assert _imported(synced_doctor).get().status == Appointment.STATUS_CANCELLED


def test_cancelled_event_is_never_imported(synced_doctor, serve, monday):
    serve(feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11), status='CANCELLED')))
    sync_doctor(synced_doctor)
    assert not _imported(synced_doctor).exists()


def test_moved_event_updates_appointment(synced_doctor, serve, monday):
    serve(feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11))))
    sync_doctor(synced_doctor)
    serve(feed(vevent('evt-1', local_dt(monday, 15), local_dt(monday, 16), sequence=1)))
    run = sync_doctor(synced_doctor)

    appt = _imported(synced_doctor).get()
    assert run.updated == 1
    assert (appt.start, appt.end) == (local_dt(monday, 15), local_dt(monday, 16))


def test_admin_cancellation_sticks_until_event_changes(synced_doctor, serve, monday):
    serve(feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11))))
    sync_doctor(synced_doctor)
    appt = _imported(synced_doctor).get()
    appt.status = Appointment.STATUS_CANCELLED
    appt.cancel_reason = 'admin'
    appt.save()

    sync_doctor(synced_doctor)
    appt.refresh_from_db()
    assert appt.status == Appointment.STATUS_CANCELLED


def test_own_uids_are_ignored(synced_doctor, serve, monday):
    internal = create_appointment({
        'doctor_id': synced_doctor.id, 'start': local_dt(monday, 10), 'end': local_dt(monday, 10, 30),
        'name': 'Ana López', 'email': 'ana@example.com',
    })
    serve(feed(vevent(appointment_uid(internal), internal.start, internal.end)))
    run = sync_doctor(synced_doctor)

    internal.refresh_from_db()
    assert internal.status == Appointment.STATUS_PENDING
    assert not _imported(synced_doctor).exists()
    assert run.conflicts == 0


def test_events_before_lookback_horizon_are_ignored(synced_doctor, serve, settings):
    settings.ICAL_SYNC_LOOKBACK_DAYS = 1
    past = timezone.now() - timedelta(days=3)
    serve(feed(vevent('old', past, past + timedelta(hours=1))))
    sync_doctor(synced_doctor)
    assert not _imported(synced_doctor).exists()


def test_feed_failure_records_failed_run(synced_doctor, monkeypatch):
    def boom(url, **kwargs):
        raise requests.ConnectionError('unreachable')
    monkeypatch.setattr(calendar_sync.requests, 'get', boom)

    run = sync_doctor(synced_doctor)
    assert run.status == CalendarSyncRun.STATUS_FAILED
    assert 'could not fetch' in run.error
    assert run.finished_at is not None
    assert cache.get(f'ical-sync:doctor:{synced_doctor.id}') is None


def test_lock_is_released_when_the_run_cannot_be_recorded(synced_doctor, serve, monkeypatch):
    def broken_create(**kwargs):
        raise DatabaseError('database is locked')
    monkeypatch.setattr(CalendarSyncRun.objects, 'create', broken_create)

    with pytest.raises(DatabaseError):
        sync_doctor(synced_doctor)
    assert cache.get(f'ical-sync:doctor:{synced_doctor.id}') is None


def test_http_error_and_garbage_feed_fail(synced_doctor, monkeypatch):
    monkeypatch.setattr(calendar_sync.requests, 'get', lambda url, **kw: FakeResponse(b'', 503))
    assert sync_doctor(synced_doctor).status == CalendarSyncRun.STATUS_FAILED

    monkeypatch.setattr(calendar_sync.requests, 'get', lambda url, **kw: FakeResponse(b'<html>oops</html>'))
    run = sync_doctor(synced_doctor)
    assert run.status == CalendarSyncRun.STATUS_FAILED
    assert not _imported(synced_doctor).exists()


def test_sync_is_skipped_while_locked(synced_doctor, serve):
    calls = serve(feed())
    cache.add(f'ical-sync:doctor:{synced_doctor.id}', 'busy', 60)

    run = sync_doctor(synced_doctor)
    assert run.status == CalendarSyncRun.STATUS_SKIPPED
    assert calls == []


def test_bidirectional_doctor_pushes_internal_appointments(synced_doctor, serve, monkeypatch, monday):
    synced_doctor.ical_bidirectional = True
    synced_doctor.ical_push_url = 'https://calendar.example.com/push/dr-perez'
    synced_doctor.save()
    internal = create_appointment({
        'doctor_id': synced_doctor.id, 'start': local_dt(monday, 9), 'end': local_dt(monday, 9, 30),
        'name': 'Ana López', 'email': 'ana@example.com',
    })
    pushed = []

    def fake_put(url, data=None, **kwargs):
        pushed.append((url, data))
        return FakeResponse()
    monkeypatch.setattr(calendar_sync.requests, 'put', fake_put)
    serve(feed())

    run = sync_doctor(synced_doctor)
    assert run.status == CalendarSyncRun.STATUS_SUCCESS
    assert run.pushed
    (url, body), = pushed
    assert url == synced_doctor.ical_push_url
    assert appointment_uid(internal).encode() in body


def test_sync_all_only_covers_configured_active_doctors(synced_doctor, serve):
    Doctor.objects.create(name='Sin calendario', email='nocal@example.com')
    Doctor.objects.create(name='Archivado', email='old@example.com', external_calendar_url=FEED_URL, active=False)

    runs = sync_all()
    assert [r.doctor_id for r in runs] == [synced_doctor.id]
