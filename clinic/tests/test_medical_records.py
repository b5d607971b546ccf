"""
API tests for insurers, patient account links, clinical records and the
per-doctor agenda.
"""
from datetime import timedelta

import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from clinic.models import Appointment, Doctor, InsuranceCompany, MedicalVisit, Patient, User

from .helpers import local_dt

pytestmark = pytest.mark.django_db


@pytest.fixture
def patient(db):
    return Patient.objects.create(first_name='Luis', last_name='Mora', email='luis@example.com')


@pytest.fixture
def booked(doctor, patient, monday):
    return Appointment.objects.create(
        doctor=doctor, patient=patient, start=local_dt(monday, 9), end=local_dt(monday, 9, 30),
        status=Appointment.STATUS_CONFIRMED, name=patient.full_name, email=patient.email,
    )


def _visit(patient, doctor, when, **extra):
    data = {'patientId': patient.id, 'doctorId': doctor.id, 'visitDate': when.isoformat()}
    data.update(extra)
    return data


# ---------------------------------------------------------------------
# Insurance companies
# ---------------------------------------------------------------------
def test_insurance_companies_public_list_and_admin_crud(api, admin_api):
    r = admin_api.post(reverse('insurance-companies'), {
        'name': 'Sanitas', 'code': 'SAN', 'coverageTypes': ['<i>dental</i>', 'general'],
    }, format='json')
    assert r.status_code == 201
    company_id = r.data['data']['id']
    assert r.data['data']['coverageTypes'] == ['dental', 'general']
    admin_api.post(reverse('insurance-companies'), {'name': 'Adeslas', 'active': False}, format='json')

    assert [c['name'] for c in api.get(reverse('insurance-companies')).data['data']] == ['Sanitas']
    everything = admin_api.get(reverse('insurance-companies'), {'includeInactive': 'true'}).data['data']
    assert [c['name'] for c in everything] == ['Adeslas', 'Sanitas']

    dup = admin_api.post(reverse('insurance-companies'), {'name': 'Sanitas'}, format='json')
    assert dup.status_code == 409
    assert api.post(reverse('insurance-companies'), {'name': 'Mapfre'}, format='json').status_code == 401

    r = admin_api.patch(reverse('insurance-company-detail', args=[company_id]), {'phone': '910000000'}, format='json')
    assert r.status_code == 200
    assert (r.data['data']['name'], r.data['data']['phone']) == ('Sanitas', '910000000')


def test_insurer_with_patients_is_archived_instead_of_deleted(admin_api, api):
    used = InsuranceCompany.objects.create(name='Sanitas')
    unused = InsuranceCompany.objects.create(name='DKV')
    r = admin_api.post(reverse('patients'), {
        'firstName': 'Ana', 'email': 'ana@example.com', 'insuranceCompanyId': used.id,
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['insuranceCompanyId'] == used.id

    r = admin_api.delete(reverse('insurance-company-detail', args=[used.id]))
    assert r.status_code == 200
    assert r.data['archived'] is True
    used.refresh_from_db()
    assert not used.active
    assert api.get(reverse('insurance-company-detail', args=[used.id])).status_code == 404

    assert admin_api.delete(reverse('insurance-company-detail', args=[unused.id])).status_code == 204
    assert not InsuranceCompany.objects.filter(id=unused.id).exists()


def test_patient_with_unknown_insurer_is_rejected(admin_api):
    r = admin_api.post(reverse('patients'), {
        'firstName': 'Ana', 'email': 'ana@example.com', 'insuranceCompanyId': 999,
    }, format='json')
    assert r.status_code == 400
    assert 'insuranceCompanyId' in r.data['error']['message']


# ---------------------------------------------------------------------
# Patient account link
# ---------------------------------------------------------------------
def test_link_and_unlink_patient_account(admin_api, customer, patient):
    url = reverse('patient-link-user', args=[patient.id])
    r = admin_api.patch(url, {'userId': customer.id}, format='json')
    assert r.status_code == 200
    assert r.data['data']['userId'] == customer.id
    patient.refresh_from_db()
    assert patient.user_id == customer.id

    assert admin_api.patch(url, {'userId': 999}, format='json').status_code == 404
    assert admin_api.patch(url, {}, format='json').status_code == 400

    r = admin_api.patch(url, {'userId': None}, format='json')
    assert r.status_code == 200
    assert r.data['data']['userId'] is None


# ---------------------------------------------------------------------
# Medical visits
# ---------------------------------------------------------------------
def test_visit_lifecycle(admin_api, doctor, patient, booked, monday):
    r = admin_api.post(reverse('medical-visits'), _visit(
        patient, doctor, booked.start, appointmentId=booked.id, diagnosis='Migraña',
        medications=['<b>Ibuprofeno</b> 600'], nextVisitDate=(booked.start + timedelta(days=14)).isoformat(),
    ), format='json')
    assert r.status_code == 201
    first = r.data['data']
    assert first['appointmentId'] == booked.id
    assert first['medications'] == ['Ibuprofeno 600']
    assert (first['visitType'], first['status']) == ('consulta', 'completed')

    r = admin_api.post(reverse('medical-visits'), _visit(
        patient, doctor, booked.start + timedelta(days=14), visitType='seguimiento', previousVisitId=first['id'],
    ), format='json')
    assert r.status_code == 201
    follow_up = r.data['data']

    listed = admin_api.get(reverse('patient-medical-visits', args=[patient.id])).data
    assert [v['id'] for v in listed['data']] == [follow_up['id'], first['id']]
    filtered = admin_api.get(reverse('medical-visits'), {'visitType': 'seguimiento'}).data
    assert [v['id'] for v in filtered['data']] == [follow_up['id']]

    r = admin_api.patch(reverse('medical-visit-detail', args=[first['id']]), {'treatment': 'Reposo'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['treatment'] == 'Reposo'

    assert admin_api.delete(reverse('medical-visit-detail', args=[follow_up['id']])).status_code == 204
    assert admin_api.get(reverse('medical-visit-detail', args=[follow_up['id']])).status_code == 404


def test_visit_links_must_agree(admin_api, doctor, patient, booked):
    other_doctor = Doctor.objects.create(name='Dr. Juan Gil', email='juan@example.com')
    other_patient = Patient.objects.create(first_name='Eva', email='eva@example.com')
    earlier = MedicalVisit.objects.create(patient=other_patient, doctor=doctor, visit_date=booked.start)

    r = admin_api.post(reverse('medical-visits'), _visit(patient, other_doctor, booked.start, appointmentId=booked.id),
                       format='json')
    assert r.status_code == 400
    assert 'appointmentId' in r.data['error']['message']

    r = admin_api.post(reverse('medical-visits'), _visit(other_patient, doctor, booked.start,
                                                         appointmentId=booked.id), format='json')
    assert r.status_code == 400
    assert 'appointmentId' in r.data['error']['message']

    r = admin_api.post(reverse('medical-visits'), _visit(patient, doctor, booked.start, previousVisitId=earlier.id),
                       format='json')
    assert r.status_code == 400
    assert 'previousVisitId' in r.data['error']['message']

    r = admin_api.post(reverse('medical-visits'), _visit(
        patient, doctor, booked.start, nextVisitDate=(booked.start - timedelta(days=1)).isoformat(),
    ), format='json')
    assert r.status_code == 400
    assert 'nextVisitDate' in r.data['error']['message']
    assert MedicalVisit.objects.filter(patient=patient).count() == 0


def test_clinical_records_are_admin_only(customer, patient):
    client = APIClient()
    client.force_authenticate(user=customer)
    assert client.get(reverse('medical-visits')).status_code == 403
    assert client.get(reverse('patient-medical-history', args=[patient.id])).status_code == 403


# ---------------------------------------------------------------------
# Medical history
# ---------------------------------------------------------------------
def test_medical_history_is_created_once_and_then_edited(admin_api, patient):
    url = reverse('patient-medical-history', args=[patient.id])
    assert admin_api.get(url).status_code == 404
    assert admin_api.patch(url, {'notes': 'x'}, format='json').status_code == 404

    r = admin_api.post(url, {'allergies': ['Penicilina'], 'bloodType': 'O+'}, format='json')
    assert r.status_code == 201
    assert r.data['data']['patientId'] == patient.id
    assert admin_api.post(url, {'allergies': []}, format='json').status_code == 409

    r = admin_api.patch(url, {'chronicConditions': ['Asma']}, format='json')
    assert r.status_code == 200
    assert r.data['data']['allergies'] == ['Penicilina']
    assert r.data['data']['chronicConditions'] == ['Asma']

    assert admin_api.post(url, {'bloodType': 'Z'}, format='json').status_code == 400
    assert admin_api.get(reverse('patient-medical-history', args=[999])).status_code == 404


# ---------------------------------------------------------------------
# Doctor agenda
# ---------------------------------------------------------------------
def test_doctor_agenda_for_a_day(admin_api, doctor, patient, booked, monday):
    Appointment.objects.create(
        doctor=doctor, start=local_dt(monday, 10), end=local_dt(monday, 10, 30),
        status=Appointment.STATUS_CANCELLED,
    )
    Appointment.objects.create(
        doctor=doctor, start=local_dt(monday + timedelta(days=7), 9), end=local_dt(monday + timedelta(days=7), 9, 30),
    )
    url = reverse('doctor-appointments', args=[doctor.id])

    assert admin_api.get(url).status_code == 400
    r = admin_api.get(url, {'date': monday.isoformat()})
    assert r.status_code == 200
    assert [a['id'] for a in r.data['data']] == [booked.id]
    r = admin_api.get(url, {'date': monday.isoformat(), 'includeCancelled': 'true'})
    assert len(r.data['data']) == 2


def test_doctor_agenda_is_visible_to_the_doctor_only(api, customer, doctor, booked, monday):
    url = reverse('doctor-appointments', args=[doctor.id])
    assert api.get(url, {'date': monday.isoformat()}).status_code == 401

    client = APIClient()
    client.force_authenticate(user=customer)
    assert client.get(url, {'date': monday.isoformat()}).status_code == 403

    doctor.user = User.objects.create_user(
        username='laura', password='D0ctor-pass!', role=User.ROLE_DOCTOR, is_approved=True,
    )
    doctor.save()
    client.force_authenticate(user=doctor.user)
    r = client.get(url, {'date': monday.isoformat()})
    assert r.status_code == 200
    assert [a['id'] for a in r.data['data']] == [booked.id]
