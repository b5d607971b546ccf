from rest_framework import serializers

from clinic.sanitize import clean_text

TEXT_FIELDS = (
    'first_name', 'last_name', 'phone', 'gender', 'address', 'city', 'postal_code',
    'identification_number', 'insurance_number', 'emergency_contact_name',
    'emergency_contact_phone', 'allergies', 'notes',
)


class PatientSerializer(serializers.Serializer):
    firstName = serializers.CharField(max_length=128, source='first_name')
    lastName = serializers.CharField(max_length=128, required=False, allow_blank=True, source='last_name')
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    dateOfBirth = serializers.DateField(required=False, allow_null=True, source='date_of_birth')
    gender = serializers.ChoiceField(choices=['male', 'female', 'other', ''], required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=128, required=False, allow_blank=True)
    postalCode = serializers.CharField(max_length=16, required=False, allow_blank=True, source='postal_code')
    identificationNumber = serializers.CharField(
        max_length=32, required=False, allow_blank=True, source='identification_number'
    )
    insuranceNumber = serializers.CharField(max_length=64, required=False, allow_blank=True, source='insurance_number')
    emergencyContactName = serializers.CharField(
        max_length=255, required=False, allow_blank=True, source='emergency_contact_name'
    )
    emergencyContactPhone = serializers.CharField(
        max_length=32, required=False, allow_blank=True, source='emergency_contact_phone'
    )
    allergies = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    active = serializers.BooleanField(required=False)
    userId = serializers.IntegerField(min_value=1, required=False, allow_null=True, source='user_id')
    insuranceCompanyId = serializers.IntegerField(
        min_value=1, required=False, allow_null=True, source='insurance_company_id'
    )

    def validate(self, attrs):
        for key in TEXT_FIELDS:
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        if 'email' in attrs:
            attrs['email'] = attrs['email'].lower()
        return attrs


class PatientListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=64, required=False)
    includeInactive = serializers.BooleanField(required=False, default=False, source='include_inactive')
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)


class PatientLinkUserSerializer(serializers.Serializer):
    userId = serializers.IntegerField(min_value=1, allow_null=True, source='user_id')
