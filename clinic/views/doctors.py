"""
Doctor views: profiles, weekly schedules, date exceptions, appointment
durations, the public available-slots lookup and a doctor's daily agenda.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import PermissionDenied
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from clinic.exceptions import NotFoundError
from clinic.models import AppointmentDuration, DoctorException, DoctorSchedule
from clinic.permissions import IsAdminOrReadOnly, IsAdminRole, IsApproved, is_admin_user
from clinic.serializers.doctors import (
    DoctorAppointmentsQuerySerializer,
    DoctorListQuerySerializer,
    DoctorSerializer,
    DurationSerializer,
    ExceptionSerializer,
    ScheduleSerializer,
    SlotsQuerySerializer,
)
from clinic.services import appointments as appointment_service
from clinic.services import doctors as doctor_service
from clinic.services.availability import available_slots as compute_slots


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def doctors(request):
    """``GET`` lists doctors (admins may pass ``includeInactive``); ``POST`` creates one."""
    admin = is_admin_user(request.user)
    if request.method == 'GET':
        q = DoctorListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = doctor_service.list_doctors(
            specialty_id=q.validated_data.get('specialty_id'),
            q=q.validated_data.get('q'),
            include_inactive=admin and q.validated_data['include_inactive'],
        )
        return Response({'ok': True, 'data': [doctor_service.doctor_to_dict(d, admin=admin) for d in qs]})

    s = DoctorSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    doctor = doctor_service.save_doctor(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.doctor_to_dict(doctor, admin=True)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def doctor_detail(request, pk: int):
    admin = is_admin_user(request.user)
    doctor = doctor_service.get_doctor(pk)
    if request.method == 'GET':
        if not (doctor.active or admin):
            raise NotFoundError('Doctor not found.')
        return Response({'ok': True, 'data': doctor_service.doctor_to_dict(doctor, admin=admin)})

    if request.method == 'DELETE':
        deleted = doctor_service.delete_doctor(pk, actor=request.user)
        if deleted:
            return Response(status=status.HTTP_204_NO_CONTENT)
        # Doctors with appointment history are archived instead.
        return Response({'ok': True, 'archived': True})

    s = DoctorSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    doctor = doctor_service.save_doctor(s.validated_data, doctor=doctor, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.doctor_to_dict(doctor, admin=True)})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def doctor_archive(request, pk: int):
    doctor = doctor_service.set_doctor_active(pk, False, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.doctor_to_dict(doctor, admin=True)})


@api_view(['POST'])
@permission_classes([IsAdminRole])
def doctor_activate(request, pk: int):
    doctor = doctor_service.set_doctor_active(pk, True, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.doctor_to_dict(doctor, admin=True)})


# ---------------------------------------------------------------------
# Schedules
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def doctor_schedules(request, pk: int):
    doctor = doctor_service.get_doctor(pk)
    if request.method == 'GET':
        qs = DoctorSchedule.objects.filter(doctor=doctor).order_by('day_of_week', 'start_time')
        return Response({'ok': True, 'data': [doctor_service.schedule_to_dict(s) for s in qs]})

    s = ScheduleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    schedule = doctor_service.save_schedule(s.validated_data, doctor=doctor, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.schedule_to_dict(schedule)},
                    status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def schedule_detail(request, pk: int):
    schedule = doctor_service.get_schedule(pk)
    if request.method == 'DELETE':
        schedule.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = ScheduleSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    schedule = doctor_service.save_schedule(s.validated_data, schedule=schedule, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.schedule_to_dict(schedule)})


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def doctor_exceptions(request, pk: int):
    doctor = doctor_service.get_doctor(pk)
    if request.method == 'GET':
        qs = DoctorException.objects.filter(doctor=doctor).order_by('date', 'start_time')
        return Response({'ok': True, 'data': [doctor_service.exception_to_dict(e) for e in qs]})

    s = ExceptionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    exc = doctor_service.save_exception(s.validated_data, doctor=doctor, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.exception_to_dict(exc)},
                    status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def exception_detail(request, pk: int):
    exc = doctor_service.get_exception(pk)
    if request.method == 'DELETE':
        exc.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
    s = ExceptionSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    exc = doctor_service.save_exception(s.validated_data, exception=exc, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.exception_to_dict(exc)})


# ---------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------
@api_view(['GET'])
@permission_classes([AllowAny])
def available_slots(request, pk: int):
    """Free slot start times (``HH:MM``, clinic local time) for ``?date=``."""
    q = SlotsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    doctor = doctor_service.get_doctor(pk)
    specialty_id = q.validated_data.get('specialty_id')
    specialty = doctor_service.get_specialty(specialty_id) if specialty_id else None
    day = q.validated_data['date']
    return Response({
        'ok': True,
        'data': {
            'doctorId': doctor.id,
            'date': day.isoformat(),
            'slots': compute_slots(doctor, day, specialty),
        },
    })


@api_view(['GET'])
@permission_classes([IsApproved])
def doctor_appointments(request, pk: int):
    """The doctor's agenda for ``?date=``; open to administrators and the doctor's own account."""
    doctor = doctor_service.get_doctor(pk)
    if not (is_admin_user(request.user) or (doctor.user_id and doctor.user_id == request.user.id)):
        raise PermissionDenied('Only administrators and the doctor can see this agenda.')
    q = DoctorAppointmentsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = appointment_service.doctor_day_appointments(
        doctor, q.validated_data['date'], include_cancelled=q.validated_data['include_cancelled'],
    )
    return Response({'ok': True, 'data': [appointment_service.appointment_to_dict(a) for a in qs]})


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def appointment_durations(request):
    if request.method == 'GET':
        qs = AppointmentDuration.objects.select_related('specialty').order_by('specialty__name')
        return Response({'ok': True, 'data': [doctor_service.duration_to_dict(d) for d in qs]})

    s = DurationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    obj, created = doctor_service.upsert_duration(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.duration_to_dict(obj)},
                    status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)
