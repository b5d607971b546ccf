from rest_framework import serializers

from clinic.models import MedicalVisit
from clinic.sanitize import clean_text

VISIT_TEXT_FIELDS = ('chief_complaint', 'symptoms', 'examination', 'diagnosis', 'treatment', 'notes')
HISTORY_TEXT_FIELDS = ('family_history', 'social_history', 'blood_type', 'emergency_contact', 'notes')
HISTORY_LIST_FIELDS = ('allergies', 'chronic_conditions', 'current_medications', 'surgical_history')


def _text_list(**kwargs):
    return serializers.ListField(child=serializers.CharField(max_length=255), required=False, **kwargs)


def _clean_list(items):
    return [i for i in (clean_text(i) for i in items) if i]


class MedicalVisitSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1, source='patient_id')
    doctorId = serializers.IntegerField(min_value=1, source='doctor_id')
    appointmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True, source='appointment_id')
    previousVisitId = serializers.IntegerField(
        min_value=1, required=False, allow_null=True, source='previous_visit_id'
    )
    visitDate = serializers.DateTimeField(source='visit_date')
    visitType = serializers.ChoiceField(
        choices=[c for c, _ in MedicalVisit.TYPE_CHOICES], required=False, source='visit_type'
    )
    chiefComplaint = serializers.CharField(required=False, allow_blank=True, source='chief_complaint')
    symptoms = serializers.CharField(required=False, allow_blank=True)
    examination = serializers.CharField(required=False, allow_blank=True)
    diagnosis = serializers.CharField(required=False, allow_blank=True)
    treatment = serializers.CharField(required=False, allow_blank=True)
    medications = _text_list()
    notes = serializers.CharField(required=False, allow_blank=True)
    nextVisitDate = serializers.DateTimeField(required=False, allow_null=True, source='next_visit_date')
    status = serializers.ChoiceField(choices=[c for c, _ in MedicalVisit.STATUS_CHOICES], required=False)
    attachments = serializers.ListField(child=serializers.URLField(max_length=1024), required=False)

    def validate(self, attrs):
        for key in VISIT_TEXT_FIELDS:
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        if 'medications' in attrs:
            attrs['medications'] = _clean_list(attrs['medications'])
        return attrs


class MedicalVisitListQuerySerializer(serializers.Serializer):
    # ``from`` is a keyword, so the field is declared in __init__.
    to = serializers.DateTimeField(required=False)
    patientId = serializers.IntegerField(min_value=1, required=False, source='patient_id')
    doctorId = serializers.IntegerField(min_value=1, required=False, source='doctor_id')
    visitType = serializers.ChoiceField(
        choices=[c for c, _ in MedicalVisit.TYPE_CHOICES], required=False, source='visit_type'
    )
    status = serializers.ChoiceField(choices=[c for c, _ in MedicalVisit.STATUS_CHOICES], required=False)
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['from'] = serializers.DateTimeField(required=False)


class MedicalHistorySerializer(serializers.Serializer):
    allergies = _text_list()
    chronicConditions = _text_list(source='chronic_conditions')
    currentMedications = _text_list(source='current_medications')
    surgicalHistory = _text_list(source='surgical_history')
    familyHistory = serializers.CharField(required=False, allow_blank=True, source='family_history')
    socialHistory = serializers.CharField(required=False, allow_blank=True, source='social_history')
    bloodType = serializers.ChoiceField(
        choices=['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-', ''],
        required=False, allow_blank=True, source='blood_type',
    )
    emergencyContact = serializers.CharField(required=False, allow_blank=True, source='emergency_contact')
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        for key in HISTORY_TEXT_FIELDS:
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        for key in HISTORY_LIST_FIELDS:
            if key in attrs:
                attrs[key] = _clean_list(attrs[key])
        return attrs
