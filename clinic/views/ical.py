"""
iCalendar export, subscription links and sync triggers.

``/api/ical/calendar.ics`` is the administrators' full calendar.  Each
doctor also has a private feed at ``/api/ical/doctor/<id>/calendar.ics``
that calendar apps can subscribe to with ``?token=<ical_feed_token>``.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.http import HttpResponse
from django.urls import reverse
from django.utils.crypto import constant_time_compare
from rest_framework import exceptions
from rest_framework.decorators import api_view, permission_classes, renderer_classes
from rest_framework.permissions import AllowAny
from rest_framework.renderers import BaseRenderer, JSONRenderer
from rest_framework.response import Response

from clinic.models import Appointment, CalendarSyncRun, Doctor
from clinic.pagination import paginated_response
from clinic.permissions import IsAdminRole, is_admin_user
from clinic.serializers.ical import CalendarQuerySerializer, SyncRequestSerializer, SyncRunQuerySerializer
from clinic.services import calendar_sync
from clinic.services.appointments import list_appointments
from clinic.services.doctors import get_doctor
from clinic.services.ical import render_calendar

logger = logging.getLogger(__name__)


class ICalendarRenderer(BaseRenderer):
    """Lets calendar clients that send ``Accept: text/calendar`` through content negotiation."""
    media_type = 'text/calendar'
    format = 'ics'
    charset = 'utf-8'

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if isinstance(data, bytes):
            return data
        return JSONRenderer().render(data)


def _ics_response(body: bytes, filename: str) -> HttpResponse:
    resp = HttpResponse(body, content_type='text/calendar; charset=utf-8')
    resp['Content-Disposition'] = f'attachment; filename="{filename}"'
    resp['Cache-Control'] = 'no-cache, no-store, must-revalidate'
    return resp


@api_view(['GET'])
@renderer_classes([JSONRenderer, ICalendarRenderer])
@permission_classes([IsAdminRole])
def calendar_feed(request):
    q = CalendarQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = list_appointments(q.validated_data).select_related('patient')
    if not q.validated_data['include_cancelled']:
        qs = qs.exclude(status=Appointment.STATUS_CANCELLED)
    body = render_calendar(qs, settings.ICAL_CALENDAR_NAME, 'Calendario de citas del centro médico')
    return _ics_response(body, 'citas.ics')


@api_view(['GET'])
@renderer_classes([JSONRenderer, ICalendarRenderer])
@permission_classes([AllowAny])
def doctor_feed(request, pk: int):
    """One doctor's non-cancelled appointments; admin session/token or feed token."""
    if not is_admin_user(request.user):
        token = request.query_params.get('token')
        if not token:
            raise exceptions.NotAuthenticated()
        doctor = Doctor.objects.filter(id=pk).first()
        if doctor is None or not constant_time_compare(token, doctor.ical_feed_token):
            logger.warning('Rejected calendar feed request for doctor %s', pk)
            raise exceptions.PermissionDenied('Invalid calendar token.')
    doctor = get_doctor(pk)
    qs = (
        Appointment.objects
        .filter(doctor=doctor, status__in=Appointment.ACTIVE_STATUSES)
        .select_related('doctor', 'specialty', 'patient')
        .order_by('start')
    )
    body = render_calendar(qs, f"{doctor.name} - {settings.ICAL_CALENDAR_NAME}")
    return _ics_response(body, f'doctor-{doctor.id}.ics')


@api_view(['GET'])
@permission_classes([IsAdminRole])
def subscription_urls(request):
    data = []
    for doctor in Doctor.objects.filter(active=True).order_by('name', 'id'):
        url = request.build_absolute_uri(reverse('ical-doctor-feed', args=[doctor.id]))
        data.append({
            'doctorId': doctor.id,
            'doctorName': doctor.name,
            'url': f'{url}?token={doctor.ical_feed_token}',
            'webcal': f"webcal://{url.split('://', 1)[-1]}?token={doctor.ical_feed_token}",
        })
    return Response({
        'ok': True,
        'data': {
            'all': request.build_absolute_uri(reverse('ical-calendar')),
            'doctors': data,
        },
    })


@api_view(['POST'])
@permission_classes([IsAdminRole])
def sync(request):
    """Run calendar sync now, for one doctor or for every configured doctor."""
    s = SyncRequestSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor_id = s.validated_data.get('doctor_id')
    if doctor_id:
        runs = [calendar_sync.sync_doctor(get_doctor(doctor_id))]
    else:
        runs = calendar_sync.sync_all()
    logger.info('Manual calendar sync by user %s: %s run(s)', request.user.id, len(runs))
    return Response({'ok': True, 'data': [calendar_sync.run_to_dict(r) for r in runs]})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def sync_runs(request):
    q = SyncRunQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = CalendarSyncRun.objects.all()
    if q.validated_data.get('doctor_id'):
        qs = qs.filter(doctor_id=q.validated_data['doctor_id'])
    return paginated_response(qs.order_by('-started_at', '-id'), calendar_sync.run_to_dict, q.validated_data)
