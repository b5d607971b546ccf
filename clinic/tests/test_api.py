"""
Integration tests for the REST API.

These exercise authentication and approval, admin gating, the error
envelope, public booking and the public content endpoints through
DRF's ``APIClient``.
"""
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient, APITestCase

from clinic.models import (
    Appointment,
    BlogPost,
    CalendarSyncRun,
    ContactMessage,
    Doctor,
    Patient,
    Product,
    Testimonial,
    User,
)
from clinic.services import calendar_sync

from .helpers import feed, local_dt, next_weekday, vevent

pytestmark = pytest.mark.django_db


class AuthFlowTests(APITestCase):
    password = 'Segura-Clave-2026'

    def setUp(self) -> None:
        self.admin = User.objects.create_user(
            username='admin', password='Adm1n-pass!', role=User.ROLE_ADMIN, is_approved=True,
        )

    def _login(self, username, password):
        return self.client.post(reverse('auth-login'), {'username': username, 'password': password}, format='json')

    def test_register_approve_login(self):
        r = self.client.post(reverse('auth-register'), {
            'username': 'maria', 'email': 'Maria@Example.com', 'password': self.password, 'name': 'María Ruiz',
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_201_CREATED)
        user = User.objects.get(username='maria')
        self.assertFalse(user.is_approved)
        self.assertEqual(user.email, 'maria@example.com')
        self.assertEqual((user.first_name, user.last_name), ('María', 'Ruiz'))

        r = self._login('maria', self.password)
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(r.data['ok'])
        self.assertEqual(r.data['error']['code'], 'permission_denied')

        admin_client = APIClient()
        admin_client.force_authenticate(user=self.admin)
        r = admin_client.patch(reverse('admin-user-approval', args=[user.id]), {'isApproved': True}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r.data['data']['isApproved'])

        r = self._login('maria', self.password)
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['role'], User.ROLE_CUSTOMER)
        for key in ('token', 'jwt_access', 'jwt_refresh'):
            self.assertTrue(r.data[key])

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Token {r.data['token']}")
        me = client.get(reverse('auth-me'))
        self.assertEqual(me.status_code, status.HTTP_200_OK)
        self.assertEqual(me.data['data']['username'], 'maria')

        client.credentials(HTTP_AUTHORIZATION=f"Bearer {r.data['jwt_access']}")
        self.assertEqual(client.get(reverse('auth-me')).status_code, status.HTTP_200_OK)

    def test_duplicate_registration_is_rejected(self):
        User.objects.create_user(username='maria', email='maria@example.com', password=self.password)
        r = self.client.post(reverse('auth-register'), {
            'username': 'MARIA', 'email': 'otra@example.com', 'password': self.password,
        }, format='json')
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(r.data['error']['code'], 'validation_error')
        self.assertIn('username', r.data['error']['message'])

    def test_wrong_password(self):
        r = self._login('admin', 'nope')
        self.assertEqual(r.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(r.data['error']['code'], 'authentication_failed')

    def test_revoked_approval_invalidates_token(self):
        user = User.objects.create_user(username='pepe', password=self.password, is_approved=True)
        token = self._login('pepe', self.password).data['token']
        user.is_approved = False
        user.save()

        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
        self.assertEqual(client.get(reverse('auth-me')).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_unapproved_session_is_logged_out(self):
        user = User.objects.create_user(username='pepe', password=self.password, is_approved=False)
        self.client.force_login(user)
        r = self.client.get(reverse('auth-me'))
        self.assertEqual(r.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(r.json()['error']['code'], 'not_approved')

    def test_logout_drops_token(self):
        token = self._login('admin', 'Adm1n-pass!').data['token']
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f'Token {token}')
        self.assertEqual(client.post(reverse('auth-logout'), {}, format='json').status_code, status.HTTP_200_OK)
        self.assertEqual(client.get(reverse('auth-me')).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_refresh_returns_new_access_token(self):
        refresh = self._login('admin', 'Adm1n-pass!').data['jwt_refresh']
        r = self.client.post(reverse('auth-refresh'), {'refresh': refresh}, format='json')
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertTrue(r.data['jwt_access'])


# ---------------------------------------------------------------------
# Access control and error envelope
# ---------------------------------------------------------------------
@pytest.mark.parametrize('name', [
    'appointments', 'patients', 'medical-visits', 'admin-users', 'admin-dashboard', 'contact',
    'testimonials-all', 'ical-calendar', 'ical-sync-runs', 'ical-subscription-urls',
])
def test_admin_routes_require_authentication(api, name):
    r = api.get(reverse(name))
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    assert r.data == {'ok': False, 'error': {'code': 'not_authenticated', 'message': r.data['error']['message']}}


def test_admin_routes_forbid_customers(customer):
    client = APIClient()
    client.force_authenticate(user=customer)
    r = client.get(reverse('patients'))
    assert r.status_code == status.HTTP_403_FORBIDDEN
    assert r.data['error']['code'] == 'permission_denied'
    assert client.post(reverse('products'), {}, format='json').status_code == status.HTTP_403_FORBIDDEN


def test_not_found_envelope(admin_api):
    r = admin_api.get(reverse('appointment-detail', args=[12345]))
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.data['error'] == {'code': 'not_found', 'message': 'Appointment not found.'}


def test_healthz(api):
    r = api.get('/healthz')
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}


# ---------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------
def _booking(doctor, day, at):
    return {
        'doctorId': doctor.id, 'date': day.isoformat(), 'time': at,
        'name': 'Ana López', 'email': 'ana@example.com', 'phone': '600000000',
        'reason': '<b>Dolor</b> de cabeza',
    }


def test_public_booking_and_conflict(api, doctor, monday):
    r = api.post(reverse('appointments'), _booking(doctor, monday, '10:00'), format='json')
    assert r.status_code == status.HTTP_201_CREATED
    data = r.data['data']
    assert data['status'] == Appointment.STATUS_PENDING
    assert data['reason'] == 'Dolor de cabeza'
    appt = Appointment.objects.get(id=data['id'])
    assert (appt.start, appt.end) == (local_dt(monday, 10), local_dt(monday, 10, 30))

    r = api.post(reverse('appointments'), _booking(doctor, monday, '10:15'), format='json')
    assert r.status_code == status.HTTP_409_CONFLICT
    assert r.data['error']['code'] == 'conflict'


def test_public_booking_outside_hours(api, doctor, monday):
    r = api.post(reverse('appointments'), _booking(doctor, monday, '13:00'), format='json')
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.data['error']['code'] == 'validation_error'
    assert not Appointment.objects.exists()


def test_public_booking_requires_contact_details(api, doctor, monday):
    body = _booking(doctor, monday, '10:00')
    del body['phone']
    r = api.post(reverse('appointments'), body, format='json')
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert 'phone' in r.data['error']['message']


def test_public_booking_in_the_past_is_rejected(api, admin_api, doctor):
    past_monday = next_weekday(0) - timedelta(days=14)
    r = api.post(reverse('appointments'), _booking(doctor, past_monday, '10:00'), format='json')
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert 'start' in r.data['error']['message']
    assert not Appointment.objects.exists()

    # The back office can still record a visit that already happened.
    r = admin_api.post(reverse('appointments'), _booking(doctor, past_monday, '10:00'), format='json')
    assert r.status_code == status.HTTP_201_CREATED


def test_available_slots_endpoint(api, doctor, monday):
    api.post(reverse('appointments'), _booking(doctor, monday, '09:00'), format='json')
    r = api.get(reverse('doctor-available-slots', args=[doctor.id]), {'date': monday.isoformat()})
    assert r.status_code == 200
    assert r.data['data']['slots'] == ['09:30', '10:00', '10:30', '11:00', '11:30']


def test_admin_lists_filters_and_cancels(admin_api, api, doctor, monday):
    api.post(reverse('appointments'), _booking(doctor, monday, '09:00'), format='json')
    api.post(reverse('appointments'), _booking(doctor, monday, '11:00'), format='json')

    r = admin_api.get(reverse('appointments'), {'doctorId': doctor.id, 'pageSize': 1})
    assert r.status_code == 200
    assert r.data['pagination'] == {'total': 2, 'page': 1, 'pageSize': 1}
    first_id = r.data['data'][0]['id']

    r = admin_api.delete(reverse('appointment-detail', args=[first_id]))
    assert r.status_code == 200
    assert r.data['data']['status'] == Appointment.STATUS_CANCELLED
    assert Appointment.objects.filter(id=first_id).exists()

    r = admin_api.get(reverse('appointments'), {'status': 'cancelled'})
    assert [a['id'] for a in r.data['data']] == [first_id]


def test_admin_patch_moves_appointment(admin_api, api, doctor, monday):
    appt_id = api.post(reverse('appointments'), _booking(doctor, monday, '09:00'), format='json').data['data']['id']
    start = local_dt(monday, 11).isoformat()
    r = admin_api.patch(reverse('appointment-detail', args=[appt_id]),
                        {'start': start, 'status': 'confirmed'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['status'] == 'confirmed'
    assert Appointment.objects.get(id=appt_id).start == local_dt(monday, 11)


def test_user_appointments_are_own_bookings(customer, doctor, monday):
    client = APIClient()
    client.force_authenticate(user=customer)
    client.post(reverse('appointments'), _booking(doctor, monday, '09:00'), format='json')
    APIClient().post(reverse('appointments'), _booking(doctor, monday, '10:00'), format='json')

    r = client.get(reverse('user-appointments'))
    assert r.status_code == 200
    assert len(r.data['data']) == 1
    assert r.data['data'][0]['userId'] == customer.id


# ---------------------------------------------------------------------
# Doctors, specialties, patients
# ---------------------------------------------------------------------
def test_public_doctor_list_hides_archived_and_admin_fields(api, doctor):
    Doctor.objects.create(name='Archivado', email='old@example.com', active=False)
    r = api.get(reverse('doctors'))
    assert [d['id'] for d in r.data['data']] == [doctor.id]
    assert 'icalFeedToken' not in r.data['data'][0]


def test_admin_creates_doctor_with_schedule(admin_api, specialty):
    r = admin_api.post(reverse('doctors'), {
        'name': 'Dr. Andrés Hernández', 'email': 'andres@example.com', 'specialtyIds': [specialty.id],
    }, format='json')
    assert r.status_code == 201
    doctor_id = r.data['data']['id']
    assert r.data['data']['specialties'] == [{'id': specialty.id, 'name': specialty.name}]

    r = admin_api.post(reverse('doctor-schedules', args=[doctor_id]),
                       {'dayOfWeek': 2, 'startTime': '16:00', 'endTime': '19:00'}, format='json')
    assert r.status_code == 201
    r = admin_api.post(reverse('doctor-schedules', args=[doctor_id]),
                       {'dayOfWeek': 2, 'startTime': '19:00', 'endTime': '16:00'}, format='json')
    assert r.status_code == 400

    wednesday = next_weekday(2)
    r = admin_api.get(reverse('doctor-available-slots', args=[doctor_id]), {'date': wednesday.isoformat()})
    assert len(r.data['data']['slots']) == 6


def test_bidirectional_doctor_needs_push_url(admin_api):
    r = admin_api.post(reverse('doctors'), {
        'name': 'Dr. X', 'email': 'x@example.com', 'icalBidirectional': True,
    }, format='json')
    assert r.status_code == 400


def test_delete_doctor_with_history_archives(admin_api, api, doctor, monday):
    api.post(reverse('appointments'), _booking(doctor, monday, '09:00'), format='json')
    r = admin_api.delete(reverse('doctor-detail', args=[doctor.id]))
    assert r.status_code == 200
    assert r.data['archived'] is True
    doctor.refresh_from_db()
    assert not doctor.active


def test_specialties_public_and_admin(api, admin_api, specialty):
    hidden = admin_api.post(reverse('specialties'), {'name': 'Podología', 'active': False}, format='json')
    assert hidden.status_code == 201
    assert [s['name'] for s in api.get(reverse('specialties')).data['data']] == ['Medicina General']
    assert len(admin_api.get(reverse('specialties')).data['data']) == 2
    dup = admin_api.post(reverse('specialties'), {'name': 'Medicina General'}, format='json')
    assert dup.status_code == 409


def test_patient_delete_deactivates(admin_api):
    r = admin_api.post(reverse('patients'), {'firstName': 'Luis', 'lastName': 'Mora', 'email': 'LUIS@example.com'},
                       format='json')
    assert r.status_code == 201
    patient_id = r.data['data']['id']
    assert r.data['data']['email'] == 'luis@example.com'

    r = admin_api.delete(reverse('patient-detail', args=[patient_id]))
    assert r.status_code == 200
    assert Patient.objects.get(id=patient_id).active is False
    assert admin_api.get(reverse('patients')).data['pagination']['total'] == 0
    assert admin_api.get(reverse('patients'), {'includeInactive': 'true'}).data['pagination']['total'] == 1


# ---------------------------------------------------------------------
# Public content
# ---------------------------------------------------------------------
def test_products_filters(api):
    Product.objects.create(name='Termómetro', category='Equipos', description='d', price='8.50',
                           image_url='https://img.example.com/t.jpg', featured=True)
    Product.objects.create(name='Vitaminas', category='Suplementos', description='d', price='12.99',
                           image_url='https://img.example.com/v.jpg')
    assert api.get(reverse('products')).data['pagination']['total'] == 2
    r = api.get(reverse('products'), {'featured': 'true'})
    assert [p['name'] for p in r.data['data']] == ['Termómetro']
    r = api.get(reverse('products'), {'category': 'suplementos'})
    assert [p['name'] for p in r.data['data']] == ['Vitaminas']


def test_blog_hides_unpublished_posts(api, admin_api):
    now = timezone.now()
    BlogPost.objects.create(title='Visible', slug='visible', category='Salud', content='<p>x</p>', excerpt='x',
                            image_url='https://img.example.com/a.jpg', published=True, publish_date=now)
    BlogPost.objects.create(title='Borrador', slug='borrador', category='Salud', content='x', excerpt='x',
                            image_url='https://img.example.com/b.jpg', published=False, publish_date=now)
    BlogPost.objects.create(title='Futuro', slug='futuro', category='Salud', content='x', excerpt='x',
                            image_url='https://img.example.com/c.jpg', publish_date=now + timedelta(days=3))

    assert [p['slug'] for p in api.get(reverse('blog')).data['data']] == ['visible']
    assert api.get(reverse('blog-post-by-slug', args=['borrador'])).status_code == 404
    assert admin_api.get(reverse('blog-post-by-slug', args=['borrador'])).status_code == 200
    assert api.get(reverse('blog-post-by-slug', args=['visible'])).data['data']['content'] == '<p>x</p>'


def test_admin_blog_post_gets_slug_and_clean_html(admin_api):
    r = admin_api.post(reverse('blog'), {
        'title': 'Cuidado de la piel', 'category': 'Dermatología', 'excerpt': 'Consejos',
        'content': '<p>Hola</p><script>alert(1)</script>', 'imageUrl': 'https://img.example.com/p.jpg',
    }, format='json')
    assert r.status_code == 201
    assert r.data['data']['slug'] == 'cuidado-de-la-piel'
    assert '<script>' not in r.data['data']['content']


def test_testimonial_submission_waits_for_approval(api, admin_api):
    r = api.post(reverse('testimonials'), {
        'name': 'Carmen', 'role': 'Paciente', 'content': 'Muy buena atención', 'rating': 5,
    }, format='json')
    assert r.status_code == 201
    t = Testimonial.objects.get()
    assert not t.approved
    assert api.get(reverse('testimonials')).data['data'] == []

    admin_api.patch(reverse('testimonial-approve', args=[t.id]), {'approved': True}, format='json')
    assert [x['id'] for x in api.get(reverse('testimonials')).data['data']] == [t.id]


def test_contact_form(api, admin_api):
    r = api.post(reverse('contact'), {'name': 'Ana'}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'validation_error'

    r = api.post(reverse('contact'), {
        'name': 'Ana', 'email': 'ana@example.com', 'subject': 'Horario', 'message': '¿Abren el sábado?',
    }, format='json')
    assert r.status_code == 201
    m = ContactMessage.objects.get()

    r = admin_api.patch(reverse('contact-reply', args=[m.id]), {'reply': 'Sí, de 9 a 13.'}, format='json')
    assert r.status_code == 200
    assert r.data['data']['processed'] is True
    assert r.data['data']['repliedAt']


def test_legal_settings_are_seeded_and_editable(api, admin_api):
    r = api.get(reverse('legal-settings'))
    assert r.status_code == 200
    assert r.data['data']['privacyPolicy']

    r = admin_api.put(reverse('legal-settings'), {'cookiesPolicy': '<h2>Cookies</h2><script>x</script>'},
                      format='json')
    assert r.status_code == 200
    assert api.get(reverse('legal-settings')).data['data']['cookiesPolicy'].startswith('<h2>Cookies</h2>')
    assert '<script>' not in api.get(reverse('legal-settings')).data['data']['cookiesPolicy']


# ---------------------------------------------------------------------
# iCalendar
# ---------------------------------------------------------------------
def test_doctor_feed_requires_token(api, doctor, monday):
    Appointment.objects.create(doctor=doctor, start=local_dt(monday, 10), end=local_dt(monday, 10, 30), name='Ana')
    url = reverse('ical-doctor-feed', args=[doctor.id])

    assert api.get(url).status_code == status.HTTP_401_UNAUTHORIZED
    assert api.get(url, {'token': 'wrong'}).status_code == status.HTTP_403_FORBIDDEN

    r = api.get(url, {'token': doctor.ical_feed_token})
    assert r.status_code == 200
    assert r['Content-Type'].startswith('text/calendar')
    assert b'BEGIN:VEVENT' in r.content


def test_admin_calendar_export_excludes_cancelled(admin_api, doctor, monday):
    Appointment.objects.create(doctor=doctor, start=local_dt(monday, 9), end=local_dt(monday, 9, 30), name='Ana')
    Appointment.objects.create(doctor=doctor, start=local_dt(monday, 10), end=local_dt(monday, 10, 30), name='Luis',
                               status=Appointment.STATUS_CANCELLED)
    r = admin_api.get(reverse('ical-calendar'))
    assert r.status_code == 200
    assert r.content.count(b'BEGIN:VEVENT') == 1
    r = admin_api.get(reverse('ical-calendar'), {'includeCancelled': 'true'})
    assert r.content.count(b'BEGIN:VEVENT') == 2


def test_subscription_urls(admin_api, doctor):
    r = admin_api.get(reverse('ical-subscription-urls'))
    (entry,) = r.data['data']['doctors']
    assert entry['url'].endswith(f'/api/ical/doctor/{doctor.id}/calendar.ics?token={doctor.ical_feed_token}')
    assert entry['webcal'].startswith('webcal://')


def test_manual_sync_endpoint(admin_api, doctor, monday, monkeypatch):
    doctor.external_calendar_url = 'https://calendar.example.com/feed.ics'
    doctor.save()

    class Resp:
        content = feed(vevent('evt-1', local_dt(monday, 10), local_dt(monday, 11)))

        def raise_for_status(self):
            pass
    monkeypatch.setattr(calendar_sync.requests, 'get', lambda url, **kw: Resp())

    r = admin_api.post(reverse('ical-sync'), {'doctorId': doctor.id}, format='json')
    assert r.status_code == 200
    assert r.data['data'][0]['status'] == CalendarSyncRun.STATUS_SUCCESS
    assert r.data['data'][0]['created'] == 1

    r = admin_api.get(reverse('ical-sync-runs'), {'doctorId': doctor.id})
    assert r.data['pagination']['total'] == 1
