"""
Administrative dashboard endpoint.

Counts for the back-office landing page: accounts waiting for
approval, today's and upcoming appointments, unread contact messages
and testimonials waiting for moderation.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.models import CalendarSyncRun
from clinic.permissions import IsAdminRole
from clinic.services.users import dashboard_counts


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_dashboard(request):
    data = dashboard_counts()
    last_failed = CalendarSyncRun.objects.filter(status=CalendarSyncRun.STATUS_FAILED).order_by('-started_at').first()
    data['lastFailedSync'] = {
        'doctorId': last_failed.doctor_id,
        'startedAt': last_failed.started_at.isoformat(),
        'error': last_failed.error,
    } if last_failed else None
    return Response({'ok': True, 'data': data})
