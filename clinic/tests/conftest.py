from datetime import time

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from clinic.models import Doctor, DoctorSchedule, Specialty, User

from .helpers import next_weekday


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def monday():
    return next_weekday(0)


@pytest.fixture
def specialty(db):
    return Specialty.objects.create(name='Medicina General')


@pytest.fixture
def doctor(db, specialty):
    """Doctor working Mondays 09:00-12:00."""
    d = Doctor.objects.create(name='Dra. Laura Pérez', email='laura@example.com')
    d.specialties.add(specialty)
    DoctorSchedule.objects.create(doctor=d, day_of_week=0, start_time=time(9, 0), end_time=time(12, 0))
    return d


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        username='admin', password='Adm1n-pass!', email='admin@example.com',
        role=User.ROLE_ADMIN, is_approved=True,
    )


@pytest.fixture
def customer(db):
    return User.objects.create_user(
        username='cliente', password='Cl1ente-pass!', email='cliente@example.com', is_approved=True,
    )


@pytest.fixture
def api():
    return APIClient()


@pytest.fixture
def admin_api(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client
