from rest_framework import serializers

from clinic.sanitize import clean_text


class SpecialtySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128)
    description = serializers.CharField(required=False, allow_blank=True)
    active = serializers.BooleanField(required=False)

    def validate_name(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError('Name is required.')
        return v

    def validate_description(self, v):
        return clean_text(v)


class DoctorSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    specialtyIds = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False, source='specialty_ids'
    )
    licenseNumber = serializers.CharField(max_length=64, required=False, allow_blank=True, source='license_number')
    experience = serializers.CharField(max_length=255, required=False, allow_blank=True)
    bio = serializers.CharField(required=False, allow_blank=True)
    active = serializers.BooleanField(required=False)
    userId = serializers.IntegerField(min_value=1, required=False, allow_null=True, source='user_id')
    externalCalendarUrl = serializers.URLField(
        max_length=1024, required=False, allow_blank=True, source='external_calendar_url'
    )
    icalPushUrl = serializers.URLField(max_length=1024, required=False, allow_blank=True, source='ical_push_url')
    icalBidirectional = serializers.BooleanField(required=False, source='ical_bidirectional')

    def validate(self, attrs):
        for key in ('name', 'phone', 'license_number', 'experience', 'bio'):
            if key in attrs:
                attrs[key] = clean_text(attrs[key])
        return attrs


class DoctorListQuerySerializer(serializers.Serializer):
    specialtyId = serializers.IntegerField(min_value=1, required=False, source='specialty_id')
    q = serializers.CharField(max_length=64, required=False)
    includeInactive = serializers.BooleanField(required=False, default=False, source='include_inactive')


class ScheduleSerializer(serializers.Serializer):
    dayOfWeek = serializers.IntegerField(min_value=0, max_value=6, source='day_of_week')
    startTime = serializers.TimeField(source='start_time')
    endTime = serializers.TimeField(source='end_time')
    isActive = serializers.BooleanField(required=False, source='is_active')

    def validate(self, attrs):
        start, end = attrs.get('start_time'), attrs.get('end_time')
        if start is not None and end is not None and start >= end:
            raise serializers.ValidationError({'endTime': ['End time must be after start time.']})
        return attrs


class ExceptionSerializer(serializers.Serializer):
    date = serializers.DateField()
    startTime = serializers.TimeField(required=False, allow_null=True, source='start_time')
    endTime = serializers.TimeField(required=False, allow_null=True, source='end_time')
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)
    isAvailable = serializers.BooleanField(required=False, source='is_available')

    def validate_reason(self, v):
        return clean_text(v)

    def validate(self, attrs):
        start, end = attrs.get('start_time'), attrs.get('end_time')
        if (start is None) != (end is None) and not self.partial:
            raise serializers.ValidationError({'endTime': ['Give both times or neither (whole day).']})
        if start is not None and end is not None and start >= end:
            raise serializers.ValidationError({'endTime': ['End time must be after start time.']})
        if attrs.get('is_available') and start is None and not self.partial:
            raise serializers.ValidationError({'startTime': ['Extra availability needs explicit hours.']})
        return attrs


class DurationSerializer(serializers.Serializer):
    specialtyId = serializers.IntegerField(min_value=1, source='specialty_id')
    duration = serializers.IntegerField(min_value=5, max_value=480)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate_description(self, v):
        return clean_text(v)


class SlotsQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    specialtyId = serializers.IntegerField(min_value=1, required=False, source='specialty_id')


class DoctorAppointmentsQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    includeCancelled = serializers.BooleanField(required=False, default=False, source='include_cancelled')
