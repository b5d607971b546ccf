"""
Appointment booking and lifecycle.

Every write that can create an overlap runs inside ``transaction.atomic``
while holding ``select_for_update`` on the doctor row, so two requests
for the same doctor are serialised and the overlap check cannot race
the insert.  Calendar sync takes the same lock.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional

from django.db import transaction
from django.utils import timezone

from clinic.exceptions import ConflictError, NotFoundError, ValidationError
from clinic.models import Appointment, Doctor, Patient, Specialty
from clinic.services.audit import log_action
from clinic.services.availability import busy_intervals, is_within_availability, slot_minutes

logger = logging.getLogger(__name__)

CONTACT_FIELDS = ('name', 'email', 'phone', 'reason', 'insurance', 'notes')


def appointment_to_dict(a: Appointment) -> dict:
    return {
        'id': a.id,
        'doctorId': a.doctor_id,
        'doctorName': a.doctor.name if a.doctor_id else None,
        'specialtyId': a.specialty_id,
        'specialtyName': a.specialty.name if a.specialty_id else None,
        'patientId': a.patient_id,
        'userId': a.user_id,
        'start': a.start.isoformat(),
        'end': a.end.isoformat(),
        'status': a.status,
        'source': a.source,
        'externalEventId': a.external_event_id,
        'name': a.name,
        'email': a.email,
        'phone': a.phone,
        'reason': a.reason,
        'insurance': a.insurance,
        'notes': a.notes,
        'cancelledAt': a.cancelled_at.isoformat() if a.cancelled_at else None,
        'cancelReason': a.cancel_reason,
        'createdAt': a.created_at.isoformat() if a.created_at else None,
    }


def lock_doctor(doctor_id: int) -> Doctor:
    """Fetch the doctor row with a write lock; call inside a transaction."""
    doctor = Doctor.objects.select_for_update().filter(id=doctor_id).first()
    if doctor is None:
        raise NotFoundError('Doctor not found.')
    return doctor


def _ensure_bookable(doctor: Doctor, start: datetime, end: datetime, *, exclude_id: Optional[int]=None) -> None:
    if start >= end:
        raise ValidationError({'end': ['End time must be after start time.']})
    if not is_within_availability(doctor, start, end):
        raise ValidationError({'start': ['The doctor is not available at the requested time.']})
    _ensure_free(doctor, start, end, exclude_id=exclude_id)


def _ensure_free(doctor: Doctor, start: datetime, end: datetime, *, exclude_id: Optional[int]=None) -> None:
    clash = busy_intervals(doctor, start, end, exclude_id=exclude_id).first()
    if clash is not None:
        logger.info('Booking conflict for doctor %s at %s-%s with appointment %s',
                    doctor.id, start.isoformat(), end.isoformat(), clash.id)
        raise ConflictError()


def _specialty_for(doctor: Doctor, specialty_id: Optional[int]) -> Optional[Specialty]:
    if not specialty_id:
        return None
    specialty = Specialty.objects.select_related('duration').filter(id=specialty_id).first()
    if specialty is None:
        raise NotFoundError('Specialty not found.')
    if not doctor.specialties.filter(id=specialty.id).exists():
        raise ValidationError({'specialtyId': ['The doctor does not offer this specialty.']})
    return specialty


def _resolve_patient(data: Dict[str, Any], user) -> Optional[Patient]:
    patient_id = data.get('patient_id')
    if patient_id:
        patient = Patient.objects.filter(id=patient_id).first()
        if patient is None:
            raise NotFoundError('Patient not found.')
        return patient
    email = (data.get('email') or '').strip()
    if not email:
        return None
    patient = Patient.objects.filter(email__iexact=email, active=True).order_by('id').first()
    if patient is None:
        first, _, last = (data.get('name') or '').strip().partition(' ')
        patient = Patient.objects.create(
            first_name=first or email.split('@')[0],
            last_name=last,
            email=email,
            phone=data.get('phone') or '',
            user=user if getattr(user, 'is_authenticated', False) else None,
        )
    return patient


@transaction.atomic
def create_appointment(data: Dict[str, Any], *, actor=None) -> Appointment:
    """Validate and book an appointment.

    ``data`` carries ``doctor_id``, ``start``, optional ``end`` and
    ``specialty_id``, optional ``patient_id`` and the contact fields.
    Without an end the appointment lasts the specialty's duration.
    Raises ``ValidationError`` when the doctor is inactive or not
    available and ``ConflictError`` when the time is already taken.
    """
    doctor = lock_doctor(data['doctor_id'])
    if not doctor.active:
        raise ValidationError({'doctorId': ['This doctor is not accepting appointments.']})
    specialty = _specialty_for(doctor, data.get('specialty_id'))
    start = data['start']
    end = data.get('end') or start + timedelta(minutes=slot_minutes(specialty))
    _ensure_bookable(doctor, start, end)

    user = actor if getattr(actor, 'is_authenticated', False) else None
    appt = Appointment.objects.create(
        doctor=doctor,
        specialty=specialty,
        patient=_resolve_patient(data, user),
        user=user,
        start=start,
        end=end,
        status=data.get('status') or Appointment.STATUS_PENDING,
        source=Appointment.SOURCE_INTERNAL,
        **{f: data.get(f) or '' for f in CONTACT_FIELDS},
    )
    log_action(user=user, action='appointment_create', object_type='appointment', object_id=appt.id,
               detail={'doctorId': doctor.id, 'start': start.isoformat(), 'end': end.isoformat()})
    logger.info('Appointment %s booked for doctor %s at %s', appt.id, doctor.id, start.isoformat())
    return appt


@transaction.atomic
def update_appointment(appointment_id: int, patch: Dict[str, Any], *, actor=None) -> Appointment:
    """Apply a partial update, re-validating whenever the slot moves.

    Moving the start without an end keeps the current length.  Setting
    the status to cancelled behaves like :func:`cancel_appointment`.
    Reactivating a cancelled appointment re-runs the full booking checks,
    since a cancelled row may have been moved without validation.
    """
    current = Appointment.objects.filter(id=appointment_id).values('doctor_id').first()
    if current is None:
        raise NotFoundError('Appointment not found.')
    doctor = lock_doctor(patch.get('doctor_id') or current['doctor_id'])
    appt = Appointment.objects.select_for_update().get(id=appointment_id)

    old_doctor_id, old_start, old_end, old_status = appt.doctor_id, appt.start, appt.end, appt.status
    if 'specialty_id' in patch:
        appt.specialty = _specialty_for(doctor, patch['specialty_id'])
    elif doctor.id != old_doctor_id and appt.specialty_id:
        appt.specialty = _specialty_for(doctor, appt.specialty_id)
    if 'patient_id' in patch:
        appt.patient = _resolve_patient({'patient_id': patch['patient_id']}, None) if patch['patient_id'] else None
    for f in CONTACT_FIELDS:
        if f in patch:
            setattr(appt, f, patch[f] or '')

    start = patch.get('start') or appt.start
    end = patch.get('end') or (start + (appt.end - appt.start) if 'start' in patch else appt.end)
    if start >= end:
        raise ValidationError({'end': ['End time must be after start time.']})
    appt.doctor, appt.start, appt.end = doctor, start, end

    status = patch.get('status') or appt.status
    moved = (doctor.id != old_doctor_id or start != old_start or end != old_end)
    reactivated = old_status == Appointment.STATUS_CANCELLED and status != Appointment.STATUS_CANCELLED

    if status != Appointment.STATUS_CANCELLED:
        if moved or reactivated:
            _ensure_bookable(doctor, start, end, exclude_id=appt.id)
        if reactivated:
            appt.cancelled_at = None
            appt.cancel_reason = ''
    elif old_status != Appointment.STATUS_CANCELLED:
        appt.cancelled_at = timezone.now()
        appt.cancel_reason = patch.get('cancel_reason') or ''
    appt.status = status
    appt.save()

    log_action(user=actor, action='appointment_update', object_type='appointment', object_id=appt.id,
               detail={'fields': sorted(patch.keys()), 'status': appt.status,
                       'moved': moved, 'previousStatus': old_status})
    return appt


@transaction.atomic
def cancel_appointment(appointment_id: int, *, actor=None, reason: str = '') -> Appointment:
    """Mark an appointment cancelled.  The row is kept; repeat calls are no-ops."""
    appt = Appointment.objects.select_for_update().filter(id=appointment_id).first()
    if appt is None:
        raise NotFoundError('Appointment not found.')
    if appt.status == Appointment.STATUS_CANCELLED:
        return appt
    previous = appt.status
    appt.status = Appointment.STATUS_CANCELLED
    appt.cancelled_at = timezone.now()
    appt.cancel_reason = reason or ''
    appt.save(update_fields=['status', 'cancelled_at', 'cancel_reason', 'updated_at'])
    log_action(user=actor, action='appointment_cancel', object_type='appointment', object_id=appt.id,
               detail={'reason': appt.cancel_reason, 'previousStatus': previous})
    return appt


def get_appointment(appointment_id: int) -> Appointment:
    appt = Appointment.objects.select_related('doctor', 'specialty', 'patient').filter(id=appointment_id).first()
    if appt is None:
        raise NotFoundError('Appointment not found.')
    return appt


def list_appointments(filters: Optional[Dict[str, Any]] = None):
    """Appointments matching ``filters``, ordered by start.

    ``from``/``to`` select appointments overlapping the range; the other
    keys (``doctor_id``, ``specialty_id``, ``patient_id``, ``user_id``,
    ``status``, ``source``) are equality filters.
    """
    filters = filters or {}
    qs = Appointment.objects.select_related('doctor', 'specialty')
    if filters.get('from'):
        qs = qs.filter(end__gt=filters['from'])
    if filters.get('to'):
        qs = qs.filter(start__lt=filters['to'])
    for key in ('doctor_id', 'specialty_id', 'patient_id', 'user_id', 'status', 'source'):
        if filters.get(key) not in (None, ''):
            qs = qs.filter(**{key: filters[key]})
    return qs.order_by('start', 'id')


def doctor_day_appointments(doctor: Doctor, day: date, *, include_cancelled: bool=False):
    """A doctor's agenda for one clinic-local calendar day."""
    tz = timezone.get_default_timezone()
    day_start = timezone.make_aware(datetime.combine(day, time.min), tz)
    qs = list_appointments({
        'doctor_id': doctor.id,
        'from': day_start,
        'to': timezone.make_aware(datetime.combine(day + timedelta(days=1), time.min), tz),
    })
    if not include_cancelled:
        qs = qs.exclude(status=Appointment.STATUS_CANCELLED)
    return qs
