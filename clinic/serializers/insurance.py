from rest_framework import serializers

from clinic.sanitize import clean_text

TEXT_FIELDS = ('name', 'code', 'phone', 'address', 'city', 'postal_code', 'notes')


class InsuranceCompanySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    code = serializers.CharField(max_length=32, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    website = serializers.URLField(max_length=512, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=128, required=False, allow_blank=True)
    postalCode = serializers.CharField(max_length=16, required=False, allow_blank=True, source='postal_code')
    coverageTypes = serializers.ListField(
        child=serializers.CharField(max_length=64), required=False, source='coverage_types'
    )
    notes = serializers.CharField(required=False, allow_blank=True)
    active = serializers.BooleanField(required=False)

    def validate(self, attrs):
        for key in TEXT_FIELDS:
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        if 'name' in attrs and not attrs['name']:
            raise serializers.ValidationError({'name': ['Name is required.']})
        if 'coverage_types' in attrs:
            attrs['coverage_types'] = [t for t in (clean_text(t) for t in attrs['coverage_types']) if t]
        return attrs


class InsuranceListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(max_length=64, required=False)
    includeInactive = serializers.BooleanField(required=False, default=False, source='include_inactive')
