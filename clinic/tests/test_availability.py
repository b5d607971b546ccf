from datetime import time, timedelta

import pytest

from clinic.models import Appointment, AppointmentDuration, DoctorException
from clinic.services.availability import available_slots, is_within_availability, slot_minutes

from .helpers import local_dt, next_weekday

pytestmark = pytest.mark.django_db


def _book(doctor, start, end, status=Appointment.STATUS_CONFIRMED):
    return Appointment.objects.create(doctor=doctor, start=start, end=end, status=status, name='X')


def test_slots_follow_weekly_window(doctor, monday):
    assert available_slots(doctor, monday) == ['09:00', '09:30', '10:00', '10:30', '11:00', '11:30']


def test_no_slots_on_days_without_schedule(doctor):
    assert available_slots(doctor, next_weekday(1)) == []


def test_booked_slot_is_not_offered(doctor, monday):
    _book(doctor, local_dt(monday, 10), local_dt(monday, 10, 30))
    assert '10:00' not in available_slots(doctor, monday)
    assert '10:30' in available_slots(doctor, monday)


def test_cancelled_appointment_frees_the_slot(doctor, monday):
    _book(doctor, local_dt(monday, 10), local_dt(monday, 10, 30), status=Appointment.STATUS_CANCELLED)
    assert '10:00' in available_slots(doctor, monday)


def test_specialty_duration_sets_the_step(doctor, specialty, monday):
    AppointmentDuration.objects.create(specialty=specialty, duration=60)
    specialty.refresh_from_db()
    assert slot_minutes(specialty) == 60
    assert available_slots(doctor, monday, specialty) == ['09:00', '10:00', '11:00']


def test_default_duration_without_specialty(settings):
    settings.APPOINTMENT_DEFAULT_MINUTES = 45
    assert slot_minutes(None) == 45


def test_blocking_exception_removes_overlapping_slots(doctor, monday):
    DoctorException.objects.create(doctor=doctor, date=monday, start_time=time(10), end_time=time(11))
    assert available_slots(doctor, monday) == ['09:00', '09:30', '11:00', '11:30']


def test_whole_day_exception_blocks_everything(doctor, monday):
    DoctorException.objects.create(doctor=doctor, date=monday, reason='Vacaciones')
    assert available_slots(doctor, monday) == []
    assert not is_within_availability(doctor, local_dt(monday, 9), local_dt(monday, 9, 30))


def test_extra_availability_opens_a_window(doctor):
    tuesday = next_weekday(1)
    DoctorException.objects.create(
        doctor=doctor, date=tuesday, start_time=time(15), end_time=time(16), is_available=True,
    )
    assert available_slots(doctor, tuesday) == ['15:00', '15:30']
    assert is_within_availability(doctor, local_dt(tuesday, 15), local_dt(tuesday, 16))


def test_inactive_doctor_has_no_slots(doctor, monday):
    doctor.active = False
    doctor.save()
    assert available_slots(doctor, monday) == []


def test_inactive_schedule_is_ignored(doctor, monday):
    doctor.schedules.update(is_active=False)
    assert available_slots(doctor, monday) == []


def test_within_availability_bounds(doctor, monday):
    assert is_within_availability(doctor, local_dt(monday, 9), local_dt(monday, 12))
    assert not is_within_availability(doctor, local_dt(monday, 8, 30), local_dt(monday, 9, 30))
    assert not is_within_availability(doctor, local_dt(monday, 11, 45), local_dt(monday, 12, 15))


def test_interval_crossing_midnight_is_rejected(doctor, monday):
    start = local_dt(monday, 23)
    assert not is_within_availability(doctor, start, start + timedelta(hours=2))
