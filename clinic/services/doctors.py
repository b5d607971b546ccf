from typing import Any, Dict, Optional, Tuple

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q

from clinic.exceptions import ConflictError, NotFoundError, ValidationError
from clinic.models import AppointmentDuration, Doctor, DoctorException, DoctorSchedule, Specialty
from clinic.services.audit import log_action

User = get_user_model()

DOCTOR_FIELDS = (
    'name', 'email', 'phone', 'license_number', 'experience', 'bio', 'active',
    'external_calendar_url', 'ical_push_url', 'ical_bidirectional',
)


def specialty_to_dict(s: Specialty) -> dict:
    duration = getattr(s, 'duration', None)
    return {
        'id': s.id,
        'name': s.name,
        'description': s.description,
        'active': s.active,
        'duration': duration.duration if duration else None,
    }


def doctor_to_dict(d: Doctor, *, admin: bool=False) -> dict:
    data = {
        'id': d.id,
        'name': d.name,
        'email': d.email,
        'phone': d.phone,
        'licenseNumber': d.license_number,
        'experience': d.experience,
        'bio': d.bio,
        'active': d.active,
        'specialties': [{'id': s.id, 'name': s.name} for s in d.specialties.all()],
    }
    if admin:
        data.update({
            'userId': d.user_id,
            'externalCalendarUrl': d.external_calendar_url,
            'icalPushUrl': d.ical_push_url,
            'icalBidirectional': d.ical_bidirectional,
            'icalFeedToken': d.ical_feed_token,
            'createdAt': d.created_at.isoformat() if d.created_at else None,
        })
    return data


def schedule_to_dict(s: DoctorSchedule) -> dict:
    return {
        'id': s.id,
        'doctorId': s.doctor_id,
        'dayOfWeek': s.day_of_week,
        'startTime': s.start_time.strftime('%H:%M'),
        'endTime': s.end_time.strftime('%H:%M'),
        'isActive': s.is_active,
    }


def exception_to_dict(e: DoctorException) -> dict:
    return {
        'id': e.id,
        'doctorId': e.doctor_id,
        'date': e.date.isoformat(),
        'startTime': e.start_time.strftime('%H:%M') if e.start_time else None,
        'endTime': e.end_time.strftime('%H:%M') if e.end_time else None,
        'reason': e.reason,
        'isAvailable': e.is_available,
    }


def duration_to_dict(d: AppointmentDuration) -> dict:
    return {
        'id': d.id,
        'specialtyId': d.specialty_id,
        'specialtyName': d.specialty.name,
        'duration': d.duration,
        'description': d.description,
    }


# ---------------------------------------------------------------------
# Specialties
# ---------------------------------------------------------------------
def get_specialty(specialty_id: int) -> Specialty:
    s = Specialty.objects.select_related('duration').filter(id=specialty_id).first()
    if not s:
        raise NotFoundError('Specialty not found.')
    return s


def save_specialty(data: Dict[str, Any], *, specialty: Optional[Specialty]=None, actor=None) -> Specialty:
    s = specialty or Specialty()
    for key in ('name', 'description', 'active'):
        if key in data:
            setattr(s, key, data[key])
    try:
        with transaction.atomic():
            s.save()
    except IntegrityError:
        raise ConflictError('A specialty with this name already exists.')
    log_action(user=actor, action='specialty_save', object_type='specialty', object_id=s.id,
               detail={'fields': sorted(data.keys())})
    return s


def delete_specialty(specialty_id: int, *, actor=None) -> None:
    s = get_specialty(specialty_id)
    if s.appointments.exists():
        # Keep history intact; hide it from the public site instead.
        s.active = False
        s.save(update_fields=['active'])
    else:
        s.delete()
    log_action(user=actor, action='specialty_delete', object_type='specialty', object_id=specialty_id)


# ---------------------------------------------------------------------
# Doctors
# ---------------------------------------------------------------------
def list_doctors(*, specialty_id: Optional[int]=None, q: Optional[str]=None, include_inactive: bool=False):
    qs = Doctor.objects.prefetch_related('specialties')
    if not include_inactive:
        qs = qs.filter(active=True)
    if specialty_id:
        qs = qs.filter(specialties__id=specialty_id)
    if q:
        qs = qs.filter(Q(name__icontains=q) | Q(email__icontains=q))
    return qs.distinct().order_by('name', 'id')


def get_doctor(doctor_id: int) -> Doctor:
    d = Doctor.objects.prefetch_related('specialties').filter(id=doctor_id).first()
    if not d:
        raise NotFoundError('Doctor not found.')
    return d


@transaction.atomic
def save_doctor(data: Dict[str, Any], *, doctor: Optional[Doctor]=None, actor=None) -> Doctor:
    d = doctor or Doctor()
    for key in DOCTOR_FIELDS:
        if key in data:
            setattr(d, key, data[key])
    if 'user_id' in data:
        if data['user_id'] and not User.objects.filter(id=data['user_id']).exists():
            raise ValidationError({'userId': ['User not found.']})
        d.user_id = data['user_id']
    if d.ical_bidirectional and not d.ical_push_url:
        raise ValidationError({'icalPushUrl': ['A push URL is required for two-way sync.']})
    d.save()
    if 'specialty_ids' in data:
        ids = set(data['specialty_ids'])
        specialties = list(Specialty.objects.filter(id__in=ids))
        if len(specialties) != len(ids):
            raise ValidationError({'specialtyIds': ['Unknown specialty.']})
        d.specialties.set(specialties)
    log_action(user=actor, action='doctor_save', object_type='doctor', object_id=d.id,
               detail={'fields': sorted(data.keys())})
    return d


def set_doctor_active(doctor_id: int, active: bool, *, actor=None) -> Doctor:
    d = get_doctor(doctor_id)
    d.active = active
    d.save(update_fields=['active'])
    log_action(user=actor, action='doctor_activate' if active else 'doctor_archive',
               object_type='doctor', object_id=d.id)
    return d


def delete_doctor(doctor_id: int, *, actor=None) -> bool:
    """Delete a doctor without appointments; otherwise archive it.  Returns True when deleted."""
    d = get_doctor(doctor_id)
    if d.appointments.exists():
        set_doctor_active(doctor_id, False, actor=actor)
        return False
    d.delete()
    log_action(user=actor, action='doctor_delete', object_type='doctor', object_id=doctor_id)
    return True


# ---------------------------------------------------------------------
# Schedules & exceptions
# ---------------------------------------------------------------------
def get_schedule(schedule_id: int) -> DoctorSchedule:
    s = DoctorSchedule.objects.filter(id=schedule_id).first()
    if not s:
        raise NotFoundError('Schedule not found.')
    return s


def save_schedule(data: Dict[str, Any], *, doctor: Optional[Doctor]=None, schedule: Optional[DoctorSchedule]=None, actor=None) -> DoctorSchedule:
    s = schedule or DoctorSchedule(doctor=doctor)
    for key in ('day_of_week', 'start_time', 'end_time', 'is_active'):
        if key in data:
            setattr(s, key, data[key])
    if s.start_time >= s.end_time:
        raise ValidationError({'endTime': ['End time must be after start time.']})
    s.save()
    log_action(user=actor, action='schedule_save', object_type='doctor_schedule', object_id=s.id,
               detail={'doctorId': s.doctor_id})
    return s


def get_exception(exception_id: int) -> DoctorException:
    e = DoctorException.objects.filter(id=exception_id).first()
    if not e:
        raise NotFoundError('Exception not found.')
    return e


def save_exception(data: Dict[str, Any], *, doctor: Optional[Doctor]=None, exception: Optional[DoctorException]=None, actor=None) -> DoctorException:
    e = exception or DoctorException(doctor=doctor)
    for key in ('date', 'start_time', 'end_time', 'reason', 'is_available'):
        if key in data:
            setattr(e, key, data[key])
    if (e.start_time is None) != (e.end_time is None):
        raise ValidationError({'endTime': ['Give both times or neither (whole day).']})
    if e.start_time is not None and e.start_time >= e.end_time:
        raise ValidationError({'endTime': ['End time must be after start time.']})
    if e.is_available and e.whole_day:
        raise ValidationError({'startTime': ['Extra availability needs explicit hours.']})
    e.save()
    log_action(user=actor, action='exception_save', object_type='doctor_exception', object_id=e.id,
               detail={'doctorId': e.doctor_id, 'date': e.date.isoformat()})
    return e


# ---------------------------------------------------------------------
# Appointment durations
# ---------------------------------------------------------------------
def upsert_duration(data: Dict[str, Any], *, actor=None) -> Tuple[AppointmentDuration, bool]:
    specialty = get_specialty(data['specialty_id'])
    obj, created = AppointmentDuration.objects.update_or_create(
        specialty=specialty,
        defaults={'duration': data['duration'], 'description': data.get('description', '')},
    )
    log_action(user=actor, action='duration_save', object_type='appointment_duration', object_id=obj.id,
               detail={'specialtyId': specialty.id, 'duration': obj.duration})
    return obj, created
