"""
URL mappings for the medical center API.

Paths have no trailing slash to match the front-end client.
"""
from django.urls import include, path

from .auth_views import login_view, logout_view, me_view, refresh_view, register_view
from .views import (
    appointments,
    blog,
    contact,
    dashboard,
    doctors,
    health,
    ical,
    insurance,
    legal,
    medical_records,
    patients,
    products,
    specialties,
    testimonials,
    users,
)

urlpatterns = [
    path('healthz', health.healthz, name='healthz'),
    path('', include('django_prometheus.urls')),

    # Auth
    path('api/auth/register', register_view, name='auth-register'),
    path('api/auth/login', login_view, name='auth-login'),
    path('api/auth/logout', logout_view, name='auth-logout'),
    path('api/auth/refresh', refresh_view, name='auth-refresh'),
    path('api/auth/me', me_view, name='auth-me'),

    # Administration
    path('api/admin/dashboard', dashboard.admin_dashboard, name='admin-dashboard'),
    path('api/admin/users', users.user_list, name='admin-users'),
    path('api/admin/users/<int:pk>', users.user_delete, name='admin-user-delete'),
    path('api/admin/users/<int:pk>/approval', users.user_approval, name='admin-user-approval'),
    path('api/admin/users/<int:pk>/role', users.user_role, name='admin-user-role'),

    # Specialties, doctors, schedules
    path('api/specialties', specialties.specialties, name='specialties'),
    path('api/specialties/<int:pk>', specialties.specialty_detail, name='specialty-detail'),
    path('api/doctors', doctors.doctors, name='doctors'),
    path('api/doctors/<int:pk>', doctors.doctor_detail, name='doctor-detail'),
    path('api/doctors/<int:pk>/archive', doctors.doctor_archive, name='doctor-archive'),
    path('api/doctors/<int:pk>/activate', doctors.doctor_activate, name='doctor-activate'),
    path('api/doctors/<int:pk>/schedules', doctors.doctor_schedules, name='doctor-schedules'),
    path('api/doctors/<int:pk>/exceptions', doctors.doctor_exceptions, name='doctor-exceptions'),
    path('api/doctors/<int:pk>/available-slots', doctors.available_slots, name='doctor-available-slots'),
    path('api/doctors/<int:pk>/appointments', doctors.doctor_appointments, name='doctor-appointments'),
    path('api/schedules/<int:pk>', doctors.schedule_detail, name='schedule-detail'),
    path('api/exceptions/<int:pk>', doctors.exception_detail, name='exception-detail'),
    path('api/appointment-durations', doctors.appointment_durations, name='appointment-durations'),

    # Appointments and patients
    path('api/appointments', appointments.appointments, name='appointments'),
    path('api/appointments/<int:pk>', appointments.appointment_detail, name='appointment-detail'),
    path('api/appointments/<int:pk>/cancel', appointments.appointment_cancel, name='appointment-cancel'),
    path('api/user/appointments', appointments.user_appointments, name='user-appointments'),
    path('api/patients', patients.patients, name='patients'),
    path('api/patients/<int:pk>', patients.patient_detail, name='patient-detail'),
    path('api/patients/<int:pk>/appointments', patients.patient_appointments, name='patient-appointments'),
    path('api/patients/<int:pk>/link-user', patients.patient_link_user, name='patient-link-user'),

    # Insurers and clinical records
    path('api/insurance-companies', insurance.insurance_companies, name='insurance-companies'),
    path('api/insurance-companies/<int:pk>', insurance.insurance_company_detail, name='insurance-company-detail'),
    path('api/medical-visits', medical_records.medical_visits, name='medical-visits'),
    path('api/medical-visits/<int:pk>', medical_records.medical_visit_detail, name='medical-visit-detail'),
    path('api/patients/<int:pk>/medical-visits', medical_records.patient_medical_visits, name='patient-medical-visits'),
    path('api/patients/<int:pk>/medical-history', medical_records.patient_medical_history, name='patient-medical-history'),

    # Site content
    path('api/products', products.products, name='products'),
    path('api/products/<int:pk>', products.product_detail, name='product-detail'),
    path('api/blog', blog.blog_posts, name='blog'),
    path('api/blog/posts/<int:pk>', blog.blog_post_detail, name='blog-post-detail'),
    path('api/blog/<slug:slug>', blog.blog_post_by_slug, name='blog-post-by-slug'),
    path('api/testimonials', testimonials.testimonials, name='testimonials'),
    path('api/testimonials/all', testimonials.testimonials_all, name='testimonials-all'),
    path('api/testimonials/<int:pk>', testimonials.testimonial_delete, name='testimonial-delete'),
    path('api/testimonials/<int:pk>/approve', testimonials.testimonial_approve, name='testimonial-approve'),
    path('api/contact', contact.contact, name='contact'),
    path('api/contact/<int:pk>', contact.contact_delete, name='contact-delete'),
    path('api/contact/<int:pk>/read', contact.contact_read, name='contact-read'),
    path('api/contact/<int:pk>/reply', contact.contact_reply, name='contact-reply'),
    path('api/settings/legal', legal.legal_settings, name='legal-settings'),

    # iCalendar
    path('api/ical/calendar.ics', ical.calendar_feed, name='ical-calendar'),
    path('api/ical/doctor/<int:pk>/calendar.ics', ical.doctor_feed, name='ical-doctor-feed'),
    path('api/ical/subscription-urls', ical.subscription_urls, name='ical-subscription-urls'),
    path('api/ical/sync', ical.sync, name='ical-sync'),
    path('api/ical/sync/runs', ical.sync_runs, name='ical-sync-runs'),
]
