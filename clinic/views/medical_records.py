"""
Medical visit and medical history views.  Clinical data is only ever
served to administrators.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.pagination import paginated_response
from clinic.permissions import IsAdminRole
from clinic.serializers.content import ListQuerySerializer
from clinic.serializers.medical_records import (
    MedicalHistorySerializer,
    MedicalVisitListQuerySerializer,
    MedicalVisitSerializer,
)
from clinic.services import medical_records as records_service
from clinic.services import patients as patient_service


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def medical_visits(request):
    if request.method == 'GET':
        q = MedicalVisitListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = records_service.list_visits(q.validated_data)
        return paginated_response(qs, records_service.visit_to_dict, q.validated_data)

    s = MedicalVisitSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    visit = records_service.save_visit(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': records_service.visit_to_dict(visit)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def medical_visit_detail(request, pk: int):
    if request.method == 'DELETE':
        records_service.delete_visit(pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    visit = records_service.get_visit(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': records_service.visit_to_dict(visit)})

    s = MedicalVisitSerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    visit = records_service.save_visit(s.validated_data, visit=visit, actor=request.user)
    return Response({'ok': True, 'data': records_service.visit_to_dict(visit)})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def patient_medical_visits(request, pk: int):
    q = ListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    patient = patient_service.get_patient(pk)
    qs = records_service.list_visits({'patient_id': patient.id})
    return paginated_response(qs, records_service.visit_to_dict, q.validated_data)


@api_view(['GET', 'POST', 'PUT', 'PATCH'])
@permission_classes([IsAdminRole])
def patient_medical_history(request, pk: int):
    """``POST`` creates the single history of a patient; ``PUT``/``PATCH`` edit it."""
    patient = patient_service.get_patient(pk)
    if request.method == 'GET':
        history = records_service.get_history(patient)
        return Response({'ok': True, 'data': records_service.history_to_dict(history)})

    s = MedicalHistorySerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    if request.method == 'POST':
        history = records_service.create_history(patient, s.validated_data, actor=request.user)
        return Response({'ok': True, 'data': records_service.history_to_dict(history)},
                        status=status.HTTP_201_CREATED)
    history = records_service.update_history(patient, s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': records_service.history_to_dict(history)})
