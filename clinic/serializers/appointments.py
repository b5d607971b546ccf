from datetime import datetime

from django.utils import timezone
from rest_framework import serializers

from clinic.models import Appointment
from clinic.sanitize import clean_text


class AppointmentCreateSerializer(serializers.Serializer):
    """Public booking form.

    The slot is given either as ``start`` (ISO datetime) or as local
    ``date`` + ``time``; ``end`` defaults to the specialty duration.
    """
    allow_past = False

    doctorId = serializers.IntegerField(min_value=1, source='doctor_id')
    specialtyId = serializers.IntegerField(min_value=1, required=False, allow_null=True, source='specialty_id')
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False, allow_null=True)
    date = serializers.DateField(required=False, write_only=True)
    time = serializers.TimeField(required=False, write_only=True)
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32)
    reason = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    insurance = serializers.CharField(max_length=128, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)

    def validate_name(self, v):
        v = clean_text(v)
        if len(v) < 2:
            raise serializers.ValidationError('Name must be at least 2 characters.')
        return v

    def validate_phone(self, v):
        return clean_text(v)

    def validate_reason(self, v):
        return clean_text(v)

    def validate_insurance(self, v):
        return clean_text(v)

    def validate_notes(self, v):
        return clean_text(v)

    def validate(self, attrs):
        day = attrs.pop('date', None)
        at = attrs.pop('time', None)
        if not attrs.get('start'):
            if day is None or at is None:
                raise serializers.ValidationError({'start': ['Provide start or date and time.']})
            attrs['start'] = timezone.make_aware(datetime.combine(day, at), timezone.get_current_timezone())
        if not self.allow_past and attrs['start'] <= timezone.now():
            raise serializers.ValidationError({'start': ['The requested time has already passed.']})
        if attrs.get('end') and attrs['end'] <= attrs['start']:
            raise serializers.ValidationError({'end': ['End time must be after start time.']})
        return attrs


class AppointmentAdminCreateSerializer(AppointmentCreateSerializer):
    # Back-office entries may record visits that already happened.
    allow_past = True

    patientId = serializers.IntegerField(min_value=1, required=False, allow_null=True, source='patient_id')
    status = serializers.ChoiceField(
        choices=[Appointment.STATUS_PENDING, Appointment.STATUS_CONFIRMED], required=False
    )
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)


class AppointmentUpdateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1, required=False, source='doctor_id')
    specialtyId = serializers.IntegerField(min_value=1, required=False, allow_null=True, source='specialty_id')
    patientId = serializers.IntegerField(min_value=1, required=False, allow_null=True, source='patient_id')
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False)
    cancelReason = serializers.CharField(max_length=255, required=False, allow_blank=True, source='cancel_reason')
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    reason = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    insurance = serializers.CharField(max_length=128, required=False, allow_blank=True)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)

    def validate(self, attrs):
        for key in ('name', 'phone', 'reason', 'insurance', 'notes', 'cancel_reason'):
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        if attrs.get('start') and attrs.get('end') and attrs['end'] <= attrs['start']:
            raise serializers.ValidationError({'end': ['End time must be after start time.']})
        return attrs


class AppointmentCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)


class AppointmentListQuerySerializer(serializers.Serializer):
    # ``from`` is a keyword, so the field is declared in __init__.
    to = serializers.DateTimeField(required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False, source='doctor_id')
    specialtyId = serializers.IntegerField(min_value=1, required=False, source='specialty_id')
    patientId = serializers.IntegerField(min_value=1, required=False, source='patient_id')
    status = serializers.ChoiceField(choices=[c for c, _ in Appointment.STATUS_CHOICES], required=False)
    source = serializers.ChoiceField(choices=[c for c, _ in Appointment.SOURCE_CHOICES], required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['from'] = serializers.DateTimeField(required=False)
