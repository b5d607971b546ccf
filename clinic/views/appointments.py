"""
Appointment views.

Anyone may book through the public form (``POST /api/appointments``);
listing, editing and cancelling are administrative.  Deleting an
appointment cancels it, the row is always kept.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.pagination import paginated_response
from clinic.permissions import IsAdminOrCreateOnly, IsAdminRole, IsApproved, is_admin_user
from clinic.serializers.appointments import (
    AppointmentAdminCreateSerializer,
    AppointmentCancelSerializer,
    AppointmentCreateSerializer,
    AppointmentListQuerySerializer,
    AppointmentUpdateSerializer,
)
from clinic.serializers.content import ListQuerySerializer
from clinic.services import appointments as appointment_service
from clinic.throttling import BookingRateThrottle


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrCreateOnly])
@throttle_classes([BookingRateThrottle])
def appointments(request):
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = appointment_service.list_appointments(q.validated_data)
        return paginated_response(qs, appointment_service.appointment_to_dict, q.validated_data)

    serializer_class = AppointmentAdminCreateSerializer if is_admin_user(request.user) else AppointmentCreateSerializer
    s = serializer_class(data=request.data)
    s.is_valid(raise_exception=True)
    appt = appointment_service.create_appointment(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': appointment_service.appointment_to_dict(appt)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def appointment_detail(request, pk: int):
    if request.method == 'GET':
        appt = appointment_service.get_appointment(pk)
        return Response({'ok': True, 'data': appointment_service.appointment_to_dict(appt)})

    if request.method == 'DELETE':
        appt = appointment_service.cancel_appointment(pk, actor=request.user, reason='deleted_by_admin')
        return Response({'ok': True, 'data': appointment_service.appointment_to_dict(appt)})

    s = AppointmentUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = appointment_service.update_appointment(pk, s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': appointment_service.appointment_to_dict(appt)})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def appointment_cancel(request, pk: int):
    s = AppointmentCancelSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appt = appointment_service.cancel_appointment(pk, actor=request.user, reason=s.validated_data.get('reason', ''))
    return Response({'ok': True, 'data': appointment_service.appointment_to_dict(appt)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsApproved])
def user_appointments(request):
    """Bookings made by the logged-in user, newest first."""
    q = ListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = appointment_service.list_appointments({'user_id': request.user.id}).order_by('-start', '-id')
    return paginated_response(qs, appointment_service.appointment_to_dict, q.validated_data)
