"""
Specialty views.

The public site lists active specialties; administrators see archived
ones too and may create, edit and remove them.  Removing a specialty
that still has appointments archives it instead.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.models import Specialty
from clinic.permissions import IsAdminOrReadOnly, IsAdminRole, is_admin_user
from clinic.serializers.doctors import SpecialtySerializer
from clinic.services import doctors as doctor_service


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def specialties(request):
    if request.method == 'GET':
        qs = Specialty.objects.select_related('duration').order_by('name')
        if not is_admin_user(request.user):
            qs = qs.filter(active=True)
        return Response({'ok': True, 'data': [doctor_service.specialty_to_dict(s) for s in qs]})

    s = SpecialtySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    specialty = doctor_service.save_specialty(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.specialty_to_dict(specialty)},
                    status=status.HTTP_201_CREATED)


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def specialty_detail(request, pk: int):
    if request.method == 'DELETE':
        doctor_service.delete_specialty(pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    specialty = doctor_service.get_specialty(pk)
    s = SpecialtySerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    specialty = doctor_service.save_specialty(s.validated_data, specialty=specialty, actor=request.user)
    return Response({'ok': True, 'data': doctor_service.specialty_to_dict(specialty)})
