from rest_framework import serializers


class CalendarQuerySerializer(serializers.Serializer):
    to = serializers.DateTimeField(required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False, source='doctor_id')
    specialtyId = serializers.IntegerField(min_value=1, required=False, source='specialty_id')
    includeCancelled = serializers.BooleanField(required=False, default=False, source='include_cancelled')

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['from'] = serializers.DateTimeField(required=False)


class SyncRequestSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1, required=False, source='doctor_id')


class SyncRunQuerySerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1, required=False, source='doctor_id')
    page = serializers.IntegerField(min_value=1, required=False)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, required=False)
