"""
Clinical records: the notes of each medical visit and the per-patient
medical history.

Visits reference the doctor and patient they belong to and, optionally,
the appointment that was booked for them and the earlier visit they
follow up.  Those links must stay consistent with each other.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from django.db import IntegrityError, transaction

from clinic.exceptions import ConflictError, NotFoundError, ValidationError
from clinic.models import Appointment, Doctor, MedicalHistory, MedicalVisit, Patient
from clinic.services.audit import log_action

VISIT_FIELDS = (
    'visit_date', 'visit_type', 'chief_complaint', 'symptoms', 'examination', 'diagnosis',
    'treatment', 'medications', 'notes', 'next_visit_date', 'status', 'attachments',
)
HISTORY_FIELDS = (
    'allergies', 'chronic_conditions', 'current_medications', 'surgical_history', 'family_history',
    'social_history', 'blood_type', 'emergency_contact', 'notes',
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def visit_to_dict(v: MedicalVisit) -> dict:
    return {
        'id': v.id,
        'patientId': v.patient_id,
        'patientName': v.patient.full_name if v.patient_id else None,
        'doctorId': v.doctor_id,
        'doctorName': v.doctor.name if v.doctor_id else None,
        'appointmentId': v.appointment_id,
        'previousVisitId': v.previous_visit_id,
        'visitDate': _iso(v.visit_date),
        'visitType': v.visit_type,
        'chiefComplaint': v.chief_complaint,
        'symptoms': v.symptoms,
        'examination': v.examination,
        'diagnosis': v.diagnosis,
        'treatment': v.treatment,
        'medications': list(v.medications or []),
        'notes': v.notes,
        'nextVisitDate': _iso(v.next_visit_date),
        'status': v.status,
        'attachments': list(v.attachments or []),
        'createdAt': _iso(v.created_at),
        'updatedAt': _iso(v.updated_at),
    }


def history_to_dict(h: MedicalHistory) -> dict:
    return {
        'id': h.id,
        'patientId': h.patient_id,
        'allergies': list(h.allergies or []),
        'chronicConditions': list(h.chronic_conditions or []),
        'currentMedications': list(h.current_medications or []),
        'surgicalHistory': list(h.surgical_history or []),
        'familyHistory': h.family_history,
        'socialHistory': h.social_history,
        'bloodType': h.blood_type,
        'emergencyContact': h.emergency_contact,
        'notes': h.notes,
        'createdAt': _iso(h.created_at),
        'updatedAt': _iso(h.updated_at),
    }


# ---------------------------------------------------------------------
# Visits
# ---------------------------------------------------------------------
def list_visits(filters: Optional[Dict[str, Any]] = None):
    """Visits matching ``filters``, newest first.

    ``from``/``to`` bound ``visit_date``; ``patient_id``, ``doctor_id``,
    ``visit_type`` and ``status`` are equality filters.
    """
    filters = filters or {}
    qs = MedicalVisit.objects.select_related('patient', 'doctor')
    if filters.get('from'):
        qs = qs.filter(visit_date__gte=filters['from'])
    if filters.get('to'):
        qs = qs.filter(visit_date__lt=filters['to'])
    for key in ('patient_id', 'doctor_id', 'visit_type', 'status'):
        if filters.get(key) not in (None, ''):
            qs = qs.filter(**{key: filters[key]})
    return qs.order_by('-visit_date', '-id')


def get_visit(visit_id: int) -> MedicalVisit:
    v = MedicalVisit.objects.select_related('patient', 'doctor').filter(id=visit_id).first()
    if not v:
        raise NotFoundError('Medical visit not found.')
    return v


def _existing(model, pk: int, field: str, label: str):
    obj = model.objects.filter(id=pk).first()
    if not obj:
        raise ValidationError({field: [f'{label} not found.']})
    return obj


@transaction.atomic
def save_visit(data: Dict[str, Any], *, visit: Optional[MedicalVisit]=None, actor=None) -> MedicalVisit:
    """Create or patch a visit.

    A linked appointment must belong to the same doctor and, when it
    names a patient, to the same patient.  A previous visit must be an
    earlier record of the same patient, and the next visit date has to
    fall after the visit itself.
    """
    v = visit or MedicalVisit()
    created = v.pk is None
    if 'patient_id' in data:
        v.patient = _existing(Patient, data['patient_id'], 'patientId', 'Patient')
    if 'doctor_id' in data:
        v.doctor = _existing(Doctor, data['doctor_id'], 'doctorId', 'Doctor')
    if 'appointment_id' in data:
        v.appointment = (
            _existing(Appointment, data['appointment_id'], 'appointmentId', 'Appointment')
            if data['appointment_id'] else None
        )
    if 'previous_visit_id' in data:
        v.previous_visit = (
            _existing(MedicalVisit, data['previous_visit_id'], 'previousVisitId', 'Previous visit')
            if data['previous_visit_id'] else None
        )
    for key in VISIT_FIELDS:
        if key in data:
            setattr(v, key, data[key])

    if v.appointment is not None:
        if v.appointment.doctor_id != v.doctor_id:
            raise ValidationError({'appointmentId': ['The appointment belongs to another doctor.']})
        if v.appointment.patient_id and v.appointment.patient_id != v.patient_id:
            raise ValidationError({'appointmentId': ['The appointment belongs to another patient.']})
    if v.previous_visit is not None:
        if v.previous_visit.patient_id != v.patient_id:
            raise ValidationError({'previousVisitId': ['The previous visit belongs to another patient.']})
        if v.previous_visit.pk == v.pk:
            raise ValidationError({'previousVisitId': ['A visit cannot follow up itself.']})
    if v.next_visit_date and v.next_visit_date <= v.visit_date:
        raise ValidationError({'nextVisitDate': ['The next visit must be after this one.']})

    v.save()
    log_action(user=actor, action='visit_create' if created else 'visit_update',
               object_type='medical_visit', object_id=v.id, detail={'fields': sorted(data.keys())})
    return v


def delete_visit(visit_id: int, *, actor=None) -> None:
    v = get_visit(visit_id)
    v.delete()
    log_action(user=actor, action='visit_delete', object_type='medical_visit', object_id=visit_id)


# ---------------------------------------------------------------------
# Medical history
# ---------------------------------------------------------------------
def get_history(patient: Patient) -> MedicalHistory:
    h = MedicalHistory.objects.filter(patient=patient).first()
    if not h:
        raise NotFoundError('Medical history not found.')
    return h


def create_history(patient: Patient, data: Dict[str, Any], *, actor=None) -> MedicalHistory:
    h = MedicalHistory(patient=patient)
    for key in HISTORY_FIELDS:
        if key in data:
            setattr(h, key, data[key])
    try:
        with transaction.atomic():
            h.save()
    except IntegrityError:
        raise ConflictError('This patient already has a medical history.')
    log_action(user=actor, action='history_create', object_type='medical_history', object_id=h.id,
               detail={'patient_id': patient.id})
    return h


def update_history(patient: Patient, data: Dict[str, Any], *, actor=None) -> MedicalHistory:
    h = get_history(patient)
    for key in HISTORY_FIELDS:
        if key in data:
            setattr(h, key, data[key])
    h.save()
    log_action(user=actor, action='history_update', object_type='medical_history', object_id=h.id,
               detail={'fields': sorted(data.keys())})
    return h
