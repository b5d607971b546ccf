"""
Two-way synchronisation with each doctor's external iCal calendar.

``sync_doctor`` fetches the doctor's feed, reconciles it against the
appointments previously imported from it and, for bidirectional
doctors, publishes the internally booked appointments back.

Conflict policy: the external calendar wins.  An imported event that
overlaps an internal booking cancels that booking (reason
``external_calendar_conflict``); an event that overlaps another imported
appointment is skipped and counted as a conflict.
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, List, Optional

import requests
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from clinic.exceptions import CalendarSyncError
from clinic.models import Appointment, CalendarSyncRecord, CalendarSyncRun, Doctor
from clinic.services.appointments import lock_doctor
from clinic.services.audit import log_action
from clinic.services.availability import busy_intervals
from clinic.services.ical import ExternalEvent, is_own_uid, parse_feed, render_calendar

logger = logging.getLogger(__name__)

CONFLICT_REASON = 'external_calendar_conflict'
REMOVED_REASON = 'external_event_removed'


def _lock_key(doctor_id: int) -> str:
    return f"ical-sync:doctor:{doctor_id}"


def run_to_dict(run: CalendarSyncRun) -> dict:
    return {
        'id': run.id,
        'doctorId': run.doctor_id,
        'startedAt': run.started_at.isoformat() if run.started_at else None,
        'finishedAt': run.finished_at.isoformat() if run.finished_at else None,
        'status': run.status,
        'created': run.created,
        'updated': run.updated,
        'cancelled': run.cancelled,
        'conflicts': run.conflicts,
        'unchanged': run.unchanged,
        'pushed': run.pushed,
        'error': run.error,
    }


def fetch_feed(url: str) -> bytes:
    try:
        resp = requests.get(url, timeout=settings.ICAL_FETCH_TIMEOUT, headers={'Accept': 'text/calendar'})
        resp.raise_for_status()
    except requests.RequestException as e:
        raise CalendarSyncError(f'could not fetch calendar feed: {e}') from e
    return resp.content


def push_feed(doctor: Doctor) -> None:
    """PUT the doctor's internally booked, non-cancelled appointments to ``ical_push_url``."""
    appointments = (
        Appointment.objects
        .filter(doctor=doctor, source=Appointment.SOURCE_INTERNAL, status__in=Appointment.ACTIVE_STATUSES)
        .select_related('doctor', 'specialty', 'patient')
        .order_by('start')
    )
    body = render_calendar(appointments, f"{doctor.name} - {settings.ICAL_CALENDAR_NAME}")
    try:
        resp = requests.put(
            doctor.ical_push_url,
            data=body,
            timeout=settings.ICAL_FETCH_TIMEOUT,
            headers={'Content-Type': 'text/calendar; charset=utf-8'},
        )
        resp.raise_for_status()
    except requests.RequestException as e:
        raise CalendarSyncError(f'could not push calendar: {e}') from e


def _apply_times(doctor: Doctor, appt: Appointment, event: ExternalEvent, stats: Dict[str, int]) -> bool:
    """Move ``appt`` onto the event's interval; False when that would overlap another import."""
    clash = busy_intervals(doctor, event.start, event.end, exclude_id=appt.id).filter(
        source=Appointment.SOURCE_EXTERNAL_ICAL
    ).first()
    if clash is not None:
        logger.info('External event %s overlaps imported appointment %s; skipped', event.key, clash.id)
        stats['conflicts'] += 1
        return False
    _cancel_internal_overlaps(doctor, event, stats, exclude_id=appt.id)
    appt.start, appt.end = event.start, event.end
    return True


def _cancel_internal_overlaps(doctor: Doctor, event: ExternalEvent, stats: Dict[str, int], *, exclude_id: Optional[int]=None) -> None:
    now = timezone.now()
    overlapping = busy_intervals(doctor, event.start, event.end, exclude_id=exclude_id).filter(
        source=Appointment.SOURCE_INTERNAL
    )
    for appt in overlapping:
        appt.status = Appointment.STATUS_CANCELLED
        appt.cancelled_at = now
        appt.cancel_reason = CONFLICT_REASON
        appt.save(update_fields=['status', 'cancelled_at', 'cancel_reason', 'updated_at'])
        stats['conflicts'] += 1
        logger.info('Appointment %s cancelled by external event %s', appt.id, event.key)
        log_action(user=None, action='appointment_cancel', object_type='appointment', object_id=appt.id,
                   detail={'reason': CONFLICT_REASON, 'externalEventId': event.key, 'doctorId': doctor.id})


def _import_event(doctor: Doctor, event: ExternalEvent, record: Optional[CalendarSyncRecord], stats: Dict[str, int]) -> None:
    now = timezone.now()
    if record is None:
        if event.cancelled:
            return
        clash = busy_intervals(doctor, event.start, event.end).filter(
            source=Appointment.SOURCE_EXTERNAL_ICAL
        ).first()
        if clash is not None:
            logger.info('External event %s overlaps imported appointment %s; skipped', event.key, clash.id)
            stats['conflicts'] += 1
            return
        _cancel_internal_overlaps(doctor, event, stats)
        appt = Appointment.objects.create(
            doctor=doctor,
            start=event.start,
            end=event.end,
            status=Appointment.STATUS_CONFIRMED,
            source=Appointment.SOURCE_EXTERNAL_ICAL,
            external_event_id=event.key,
            name=event.summary[:255],
            notes='Importado del calendario externo',
        )
        CalendarSyncRecord.objects.create(
            doctor=doctor, external_event_id=event.key, appointment=appt,
            fingerprint=event.fingerprint, last_synced_at=now,
        )
        stats['created'] += 1
        return

    appt = record.appointment
    if event.cancelled:
        if appt.status != Appointment.STATUS_CANCELLED:
            _cancel_imported(appt, REMOVED_REASON)
            stats['cancelled'] += 1
        record.fingerprint = event.fingerprint
        record.last_synced_at = now
        record.save(update_fields=['fingerprint', 'last_synced_at'])
        return

    moved = appt.start != event.start or appt.end != event.end
    changed = record.fingerprint != event.fingerprint
    # An admin cancellation sticks until the external event itself changes.
    reappeared = appt.status == Appointment.STATUS_CANCELLED and (changed or appt.cancel_reason == REMOVED_REASON)
    if appt.status == Appointment.STATUS_CANCELLED and not reappeared:
        stats['unchanged'] += 1
        return
    if not changed and not moved and not reappeared:
        stats['unchanged'] += 1
        return
    if (moved or reappeared) and not _apply_times(doctor, appt, event, stats):
        return
    if reappeared:
        appt.status = Appointment.STATUS_CONFIRMED
        appt.cancelled_at = None
        appt.cancel_reason = ''
    appt.name = event.summary[:255]
    appt.save()
    record.fingerprint = event.fingerprint
    record.last_synced_at = now
    record.save(update_fields=['fingerprint', 'last_synced_at'])
    stats['updated'] += 1


def _cancel_imported(appt: Appointment, reason: str) -> None:
    appt.status = Appointment.STATUS_CANCELLED
    appt.cancelled_at = timezone.now()
    appt.cancel_reason = reason
    appt.save(update_fields=['status', 'cancelled_at', 'cancel_reason', 'updated_at'])
    log_action(user=None, action='appointment_cancel', object_type='appointment', object_id=appt.id,
               detail={'reason': reason, 'externalEventId': appt.external_event_id})


@transaction.atomic
def reconcile(doctor_id: int, events: List[ExternalEvent]) -> Dict[str, int]:
    """Apply a parsed feed to the doctor's imported appointments.

    Appointments are matched to events by :attr:`ExternalEvent.key`, so
    every occurrence of a recurring series maps to its own appointment.

    Runs under the same doctor row lock as booking, so a reconciliation
    and a booking for the same doctor never interleave.
    """
    doctor = lock_doctor(doctor_id)
    stats = {'created': 0, 'updated': 0, 'cancelled': 0, 'conflicts': 0, 'unchanged': 0}
    horizon = timezone.now() - timedelta(days=settings.ICAL_SYNC_LOOKBACK_DAYS)

    records = {
        r.external_event_id: r
        for r in CalendarSyncRecord.objects.select_related('appointment').filter(doctor=doctor)
    }
    seen = set()
    for event in events:
        if is_own_uid(event.uid) or event.end < horizon:
            continue
        seen.add(event.key)
        _import_event(doctor, event, records.get(event.key), stats)

    for uid, record in records.items():
        appt = record.appointment
        if uid in seen or appt.status == Appointment.STATUS_CANCELLED or appt.end < horizon:
            continue
        _cancel_imported(appt, REMOVED_REASON)
        stats['cancelled'] += 1
    return stats


def _run_sync(doctor: Doctor, run: CalendarSyncRun) -> None:
    try:
        if doctor.external_calendar_url:
            events = parse_feed(fetch_feed(doctor.external_calendar_url))
            stats = reconcile(doctor.id, events)
            for key, value in stats.items():
                setattr(run, key, value)
        if doctor.ical_bidirectional and doctor.ical_push_url:
            push_feed(doctor)
            run.pushed = True
        run.status = CalendarSyncRun.STATUS_SUCCESS
    except CalendarSyncError as e:
        run.status = CalendarSyncRun.STATUS_FAILED
        run.error = str(e)
        logger.warning('Calendar sync for doctor %s failed: %s', doctor.id, e)
    except Exception as e:
        run.status = CalendarSyncRun.STATUS_FAILED
        run.error = f'{e.__class__.__name__}: {e}'
        logger.exception('Calendar sync for doctor %s crashed', doctor.id)


def sync_doctor(doctor: Doctor) -> CalendarSyncRun:
    """Fetch, reconcile and (when configured) push one doctor's calendar.

    Fetch, reconcile and push failures never propagate: they are logged
    and stored on the returned ``CalendarSyncRun`` so the next scheduled
    run retries.  The per-doctor lock is released on every path.
    """
    if not cache.add(_lock_key(doctor.id), timezone.now().isoformat(), settings.ICAL_SYNC_LOCK_TTL):
        logger.info('Calendar sync for doctor %s already running; skipped', doctor.id)
        return CalendarSyncRun.objects.create(
            doctor=doctor, status=CalendarSyncRun.STATUS_SKIPPED,
            finished_at=timezone.now(), error='sync already in progress',
        )

    try:
        run = CalendarSyncRun.objects.create(doctor=doctor)
        logger.info('Calendar sync for doctor %s started', doctor.id)
        _run_sync(doctor, run)
    finally:
        cache.delete(_lock_key(doctor.id))
    run.finished_at = timezone.now()
    run.save()
    logger.info('Calendar sync for doctor %s finished: %s created=%s updated=%s cancelled=%s conflicts=%s',
                doctor.id, run.status, run.created, run.updated, run.cancelled, run.conflicts)
    return run


def sync_all() -> List[CalendarSyncRun]:
    """Sync every active doctor that has an external feed or a push target."""
    doctors = Doctor.objects.filter(active=True).exclude(external_calendar_url='', ical_push_url='')
    return [sync_doctor(d) for d in doctors.order_by('id')]
