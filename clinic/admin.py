"""
Django admin registrations for the clinic models.

The REST API is the main back office; the ``/admin/`` site is kept for
superusers to inspect data and fix records by hand.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import (
    Appointment,
    AppointmentDuration,
    AuditEvent,
    BlogPost,
    CalendarSyncRecord,
    CalendarSyncRun,
    ContactMessage,
    Doctor,
    DoctorException,
    DoctorSchedule,
    InsuranceCompany,
    LegalSettings,
    MedicalHistory,
    MedicalVisit,
    Patient,
    Product,
    Specialty,
    Testimonial,
    User,
)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('username', 'email', 'role', 'is_approved', 'is_staff', 'is_superuser')
    list_filter = ('role', 'is_approved', 'is_staff')
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Medical center', {'fields': ('role', 'is_approved', 'phone', 'address', 'city',
                                       'postal_code', 'email_notifications')}),
    )


@admin.register(Specialty)
class SpecialtyAdmin(admin.ModelAdmin):
    list_display = ('name', 'active', 'created_at')
    list_filter = ('active',)
    search_fields = ('name',)


class DoctorScheduleInline(admin.TabularInline):
    model = DoctorSchedule
    extra = 0


class DoctorExceptionInline(admin.TabularInline):
    model = DoctorException
    extra = 0


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ('name', 'email', 'active', 'ical_bidirectional', 'created_at')
    list_filter = ('active', 'specialties')
    search_fields = ('name', 'email', 'license_number')
    filter_horizontal = ('specialties',)
    inlines = [DoctorScheduleInline, DoctorExceptionInline]


@admin.register(AppointmentDuration)
class AppointmentDurationAdmin(admin.ModelAdmin):
    list_display = ('specialty', 'duration', 'description')


@admin.register(InsuranceCompany)
class InsuranceCompanyAdmin(admin.ModelAdmin):
    list_display = ('name', 'code', 'phone', 'active', 'created_at')
    list_filter = ('active',)
    search_fields = ('name', 'code')


@admin.register(MedicalVisit)
class MedicalVisitAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'doctor', 'visit_date', 'visit_type', 'status')
    list_filter = ('visit_type', 'status', 'doctor')
    date_hierarchy = 'visit_date'
    raw_id_fields = ('patient', 'appointment', 'previous_visit')


@admin.register(MedicalHistory)
class MedicalHistoryAdmin(admin.ModelAdmin):
    list_display = ('patient', 'blood_type', 'updated_at')
    raw_id_fields = ('patient',)


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('first_name', 'last_name', 'email', 'phone', 'active', 'created_at')
    list_filter = ('active', 'insurance_company')
    search_fields = ('first_name', 'last_name', 'email', 'phone', 'identification_number')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'doctor', 'start', 'end', 'status', 'source', 'name')
    list_filter = ('status', 'source', 'doctor')
    search_fields = ('name', 'email', 'phone', 'external_event_id')
    date_hierarchy = 'start'
    raw_id_fields = ('patient', 'user')


@admin.register(CalendarSyncRecord)
class CalendarSyncRecordAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'external_event_id', 'appointment', 'last_synced_at')
    search_fields = ('external_event_id',)


@admin.register(CalendarSyncRun)
class CalendarSyncRunAdmin(admin.ModelAdmin):
    list_display = ('doctor', 'started_at', 'status', 'created', 'updated', 'cancelled', 'conflicts', 'pushed')
    list_filter = ('status', 'doctor')


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('name', 'category', 'price', 'in_stock', 'featured')
    list_filter = ('category', 'featured', 'in_stock')
    search_fields = ('name', 'category')


@admin.register(BlogPost)
class BlogPostAdmin(admin.ModelAdmin):
    list_display = ('title', 'category', 'published', 'publish_date')
    list_filter = ('published', 'category')
    search_fields = ('title', 'slug')
    prepopulated_fields = {'slug': ('title',)}


@admin.register(Testimonial)
class TestimonialAdmin(admin.ModelAdmin):
    list_display = ('name', 'role', 'rating', 'approved', 'date')
    list_filter = ('approved',)


@admin.register(ContactMessage)
class ContactMessageAdmin(admin.ModelAdmin):
    list_display = ('subject', 'name', 'email', 'processed', 'date')
    list_filter = ('processed',)
    search_fields = ('subject', 'name', 'email')


admin.site.register(LegalSettings)


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
    readonly_fields = ('user', 'action', 'object_type', 'object_id', 'detail', 'created_at')
