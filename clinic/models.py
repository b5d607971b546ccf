"""
Database models for the pharmacy and medical center backend.

These models capture the public content of the site (products, blog,
testimonials, contact messages, legal texts) and the medical center
back office: specialties, doctors with their weekly availability,
patients with their insurers, clinical visits and medical history,
appointments and the bookkeeping required to mirror each doctor's
external iCal calendar.
"""
from __future__ import annotations

import secrets

from django.contrib.auth.models import AbstractUser
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


def _feed_token() -> str:
    return secrets.token_urlsafe(24)


class User(AbstractUser):
    """Custom user model with a role and an approval flag.

    Self-registered accounts start as unapproved customers; an
    administrator approves them from the back office.  Staff and
    superusers are always treated as approved.
    """
    ROLE_CUSTOMER = 'customer'
    ROLE_DOCTOR = 'doctor'
    ROLE_ADMIN = 'admin'
    ROLE_CHOICES = [
        (ROLE_CUSTOMER, 'Customer'),
        (ROLE_DOCTOR, 'Doctor'),
        (ROLE_ADMIN, 'Administrator'),
    ]
    role = models.CharField(max_length=16, choices=ROLE_CHOICES, default=ROLE_CUSTOMER, db_index=True)
    is_approved = models.BooleanField(default=False, db_index=True)
    phone = models.CharField(max_length=32, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=128, blank=True)
    postal_code = models.CharField(max_length=16, blank=True)
    email_notifications = models.BooleanField(default=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def is_admin(self) -> bool:
        return self.role == self.ROLE_ADMIN or self.is_superuser

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Specialty(models.Model):
    name = models.CharField(max_length=128, unique=True)
    description = models.TextField(blank=True)
    active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = 'specialties'
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class Doctor(models.Model):
    """A doctor working at the medical center.

    ``external_calendar_url`` points at the doctor's own iCal feed
    (Google/Outlook/iCloud export).  When ``ical_bidirectional`` is set
    and ``ical_push_url`` is present, internally booked appointments are
    published back to that calendar after every sync.
    """
    name = models.CharField(max_length=255)
    email = models.EmailField()
    phone = models.CharField(max_length=32, blank=True)
    specialties = models.ManyToManyField(Specialty, blank=True, related_name='doctors')
    license_number = models.CharField(max_length=64, blank=True)
    experience = models.CharField(max_length=255, blank=True)
    bio = models.TextField(blank=True)
    active = models.BooleanField(default=True, db_index=True)
    external_calendar_url = models.URLField(max_length=1024, blank=True)
    ical_push_url = models.URLField(max_length=1024, blank=True)
    ical_bidirectional = models.BooleanField(default=False)
    ical_feed_token = models.CharField(max_length=64, default=_feed_token, unique=True)
    user = models.OneToOneField(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='doctor_profile'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name']

    def __str__(self) -> str:
        return self.name


class DoctorSchedule(models.Model):
    """Weekly availability window.  ``day_of_week`` follows ``date.weekday()``."""
    DAY_CHOICES = [
        (0, 'Monday'),
        (1, 'Tuesday'),
        (2, 'Wednesday'),
        (3, 'Thursday'),
        (4, 'Friday'),
        (5, 'Saturday'),
        (6, 'Sunday'),
    ]
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='schedules')
    day_of_week = models.PositiveSmallIntegerField(choices=DAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['doctor', 'day_of_week', 'start_time']
        indexes = [models.Index(fields=['doctor', 'day_of_week'], name='sched_doctor_day_idx')]

    def __str__(self) -> str:
        return f"{self.doctor_id}: {self.get_day_of_week_display()} {self.start_time:%H:%M}-{self.end_time:%H:%M}"


class DoctorException(models.Model):
    """A one-off change to a doctor's availability on a given date.

    Without times the exception covers the whole day.  ``is_available``
    False blocks the interval (holidays, conferences); True opens extra
    availability outside the weekly schedule.
    """
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='exceptions')
    date = models.DateField()
    start_time = models.TimeField(null=True, blank=True)
    end_time = models.TimeField(null=True, blank=True)
    reason = models.CharField(max_length=255, blank=True)
    is_available = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['doctor', 'date', 'start_time']
        indexes = [models.Index(fields=['doctor', 'date'], name='exc_doctor_date_idx')]

    @property
    def whole_day(self) -> bool:
        return self.start_time is None or self.end_time is None

    def __str__(self) -> str:
        kind = 'open' if self.is_available else 'blocked'
        return f"{self.doctor_id}: {self.date} {kind}"


class AppointmentDuration(models.Model):
    specialty = models.OneToOneField(Specialty, on_delete=models.CASCADE, related_name='duration')
    duration = models.PositiveIntegerField(default=30, validators=[MinValueValidator(5)])
    description = models.CharField(max_length=255, blank=True)

    def __str__(self) -> str:
        return f"{self.specialty}: {self.duration} min"


class InsuranceCompany(models.Model):
    """Health insurer a patient may be covered by."""
    name = models.CharField(max_length=255, unique=True)
    code = models.CharField(max_length=32, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    website = models.URLField(max_length=512, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=128, blank=True)
    postal_code = models.CharField(max_length=16, blank=True)
    coverage_types = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['name', 'id']
        verbose_name_plural = 'insurance companies'

    def __str__(self) -> str:
        return self.name


class Patient(models.Model):
    """Medical record card of a patient, optionally linked to a site account."""
    user = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients')
    first_name = models.CharField(max_length=128)
    last_name = models.CharField(max_length=128, blank=True)
    email = models.EmailField(db_index=True)
    phone = models.CharField(max_length=32, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=16, blank=True)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=128, blank=True)
    postal_code = models.CharField(max_length=16, blank=True)
    identification_number = models.CharField(max_length=32, blank=True)
    insurance_number = models.CharField(max_length=64, blank=True)
    insurance_company = models.ForeignKey(
        InsuranceCompany, null=True, blank=True, on_delete=models.SET_NULL, related_name='patients'
    )
    emergency_contact_name = models.CharField(max_length=255, blank=True)
    emergency_contact_phone = models.CharField(max_length=32, blank=True)
    allergies = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name} <{self.email}>"


class Appointment(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_COMPLETED = 'completed'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'pending'),
        (STATUS_CONFIRMED, 'confirmed'),
        (STATUS_CANCELLED, 'cancelled'),
        (STATUS_COMPLETED, 'completed'),
    )
    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED)

    SOURCE_INTERNAL = 'internal'
    SOURCE_EXTERNAL_ICAL = 'external_ical'
    SOURCE_CHOICES = (
        (SOURCE_INTERNAL, 'internal'),
        (SOURCE_EXTERNAL_ICAL, 'external-ical'),
    )

    patient = models.ForeignKey(
        Patient, null=True, blank=True, on_delete=models.PROTECT, related_name='appointments'
    )
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='appointments')
    specialty = models.ForeignKey(
        Specialty, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    user = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='appointments'
    )
    start = models.DateTimeField()
    end = models.DateTimeField()
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    source = models.CharField(max_length=16, choices=SOURCE_CHOICES, default=SOURCE_INTERNAL)
    external_event_id = models.CharField(max_length=512, null=True, blank=True)

    name = models.CharField(max_length=255, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    reason = models.TextField(blank=True)
    insurance = models.CharField(max_length=128, blank=True)
    notes = models.TextField(blank=True)

    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['start', 'id']
        indexes = [
            models.Index(fields=['doctor', 'start', 'end'], name='appt_doctor_span_idx'),
            models.Index(fields=['doctor', 'status'], name='appt_doctor_status_idx'),
            models.Index(fields=['source', 'external_event_id'], name='appt_source_ext_idx'),
        ]

    @property
    def is_active(self) -> bool:
        return self.status != self.STATUS_CANCELLED

    def __str__(self) -> str:
        return f"appt {self.id} d={self.doctor_id} {self.start:%F %H:%M} [{self.status}]"


class MedicalVisit(models.Model):
    """Clinical notes of one consultation, optionally tied to the booked appointment."""
    TYPE_CONSULTATION = 'consulta'
    TYPE_REVIEW = 'revision'
    TYPE_EMERGENCY = 'urgencia'
    TYPE_FOLLOW_UP = 'seguimiento'
    TYPE_CHOICES = (
        (TYPE_CONSULTATION, 'consultation'),
        (TYPE_REVIEW, 'review'),
        (TYPE_EMERGENCY, 'emergency'),
        (TYPE_FOLLOW_UP, 'follow-up'),
    )
    STATUS_COMPLETED = 'completed'
    STATUS_PENDING = 'pending'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_COMPLETED, 'completed'),
        (STATUS_PENDING, 'pending'),
        (STATUS_CANCELLED, 'cancelled'),
    )

    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='medical_visits')
    doctor = models.ForeignKey(Doctor, on_delete=models.PROTECT, related_name='medical_visits')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_visits'
    )
    previous_visit = models.ForeignKey(
        'self', null=True, blank=True, on_delete=models.SET_NULL, related_name='follow_ups'
    )
    visit_date = models.DateTimeField()
    visit_type = models.CharField(max_length=16, choices=TYPE_CHOICES, default=TYPE_CONSULTATION)
    chief_complaint = models.TextField(blank=True)
    symptoms = models.TextField(blank=True)
    examination = models.TextField(blank=True)
    diagnosis = models.TextField(blank=True)
    treatment = models.TextField(blank=True)
    medications = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    next_visit_date = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_COMPLETED, db_index=True)
    attachments = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-visit_date', '-id']
        indexes = [
            models.Index(fields=['patient', 'visit_date'], name='visit_patient_date_idx'),
            models.Index(fields=['doctor', 'visit_date'], name='visit_doctor_date_idx'),
        ]

    def __str__(self) -> str:
        return f"visit {self.id} p={self.patient_id} d={self.doctor_id} {self.visit_date:%F}"


class MedicalHistory(models.Model):
    """Background clinical data of a patient; at most one per patient."""
    patient = models.OneToOneField(Patient, on_delete=models.CASCADE, related_name='medical_history')
    allergies = models.JSONField(default=list, blank=True)
    chronic_conditions = models.JSONField(default=list, blank=True)
    current_medications = models.JSONField(default=list, blank=True)
    surgical_history = models.JSONField(default=list, blank=True)
    family_history = models.TextField(blank=True)
    social_history = models.TextField(blank=True)
    blood_type = models.CharField(max_length=8, blank=True)
    emergency_contact = models.TextField(blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'medical histories'

    def __str__(self) -> str:
        return f"history p={self.patient_id}"


class CalendarSyncRecord(models.Model):
    """Maps an external VEVENT UID to the internal appointment it created."""
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='sync_records')
    external_event_id = models.CharField(max_length=512)
    appointment = models.OneToOneField(Appointment, on_delete=models.CASCADE, related_name='sync_record')
    fingerprint = models.CharField(max_length=128, blank=True)
    last_synced_at = models.DateTimeField()

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['doctor', 'external_event_id'], name='uniq_sync_record_per_doctor'),
        ]

    def __str__(self) -> str:
        return f"sync d={self.doctor_id} {self.external_event_id} -> {self.appointment_id}"


class CalendarSyncRun(models.Model):
    STATUS_SUCCESS = 'success'
    STATUS_FAILED = 'failed'
    STATUS_SKIPPED = 'skipped'
    STATUS_CHOICES = (
        (STATUS_SUCCESS, 'success'),
        (STATUS_FAILED, 'failed'),
        (STATUS_SKIPPED, 'skipped'),
    )
    doctor = models.ForeignKey(Doctor, on_delete=models.CASCADE, related_name='sync_runs')
    started_at = models.DateTimeField(auto_now_add=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SUCCESS)
    created = models.PositiveIntegerField(default=0)
    updated = models.PositiveIntegerField(default=0)
    cancelled = models.PositiveIntegerField(default=0)
    conflicts = models.PositiveIntegerField(default=0)
    unchanged = models.PositiveIntegerField(default=0)
    pushed = models.BooleanField(default=False)
    error = models.TextField(blank=True)

    class Meta:
        ordering = ['-started_at', '-id']
        indexes = [models.Index(fields=['doctor', 'started_at'], name='syncrun_doctor_started_idx')]

    def __str__(self) -> str:
        return f"sync run d={self.doctor_id} {self.status} @ {self.started_at:%F %T}"


class Product(models.Model):
    name = models.CharField(max_length=255)
    category = models.CharField(max_length=128, db_index=True)
    description = models.TextField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    image_url = models.URLField(max_length=1024)
    discount = models.PositiveSmallIntegerField(
        null=True, blank=True, validators=[MaxValueValidator(100)]
    )
    in_stock = models.BooleanField(default=True)
    featured = models.BooleanField(default=False, db_index=True)
    date_added = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.name


class BlogPost(models.Model):
    title = models.CharField(max_length=255)
    slug = models.SlugField(max_length=255, unique=True)
    category = models.CharField(max_length=128)
    content = models.TextField()
    excerpt = models.TextField()
    image_url = models.URLField(max_length=1024)
    published = models.BooleanField(default=True, db_index=True)
    publish_date = models.DateTimeField()

    class Meta:
        ordering = ['-publish_date', '-id']

    def __str__(self) -> str:
        return self.title


class Testimonial(models.Model):
    name = models.CharField(max_length=128)
    role = models.CharField(max_length=128)
    content = models.TextField()
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    date = models.DateTimeField(auto_now_add=True)
    approved = models.BooleanField(default=False, db_index=True)

    class Meta:
        ordering = ['-date', '-id']

    def __str__(self) -> str:
        return f"{self.name} ({self.rating}/5)"


class ContactMessage(models.Model):
    name = models.CharField(max_length=128)
    email = models.EmailField()
    phone = models.CharField(max_length=32, blank=True)
    subject = models.CharField(max_length=255)
    message = models.TextField()
    date = models.DateTimeField(auto_now_add=True)
    processed = models.BooleanField(default=False, db_index=True)
    notes = models.TextField(blank=True)
    reply = models.TextField(blank=True)
    replied_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-date', '-id']

    def __str__(self) -> str:
        return f"{self.subject} ({self.email})"


class LegalSettings(models.Model):
    """Singleton row holding the legal pages shown on the public site."""
    privacy_policy = models.TextField(blank=True)
    cookies_policy = models.TextField(blank=True)
    terms_and_conditions = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = 'legal settings'

    def __str__(self) -> str:
        return f"Legal settings @ {self.updated_at:%F %T}"


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='audit_object_created_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.action}:{self.object_type}#{self.object_id}"
