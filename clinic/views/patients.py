from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.pagination import paginated_response
from clinic.permissions import IsAdminRole
from clinic.serializers.content import ListQuerySerializer
from clinic.serializers.patients import PatientLinkUserSerializer, PatientListQuerySerializer, PatientSerializer
from clinic.services import appointments as appointment_service
from clinic.services import patients as patient_service


@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def patients(request):
    if request.method == 'GET':
        q = PatientListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = patient_service.list_patients(
            q=q.validated_data.get('q'),
            include_inactive=q.validated_data['include_inactive'],
        )
        return paginated_response(qs, patient_service.patient_to_dict, q.validated_data)

    s = PatientSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.save_patient(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': patient_service.patient_to_dict(patient)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def patient_detail(request, pk: int):
    """``DELETE`` only deactivates; appointment history keeps the patient."""
    if request.method == 'DELETE':
        patient = patient_service.deactivate_patient(pk, actor=request.user)
        return Response({'ok': True, 'data': patient_service.patient_to_dict(patient)})

    patient = patient_service.get_patient(pk)
    if request.method == 'GET':
        return Response({'ok': True, 'data': patient_service.patient_to_dict(patient)})

    s = PatientSerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    patient = patient_service.save_patient(s.validated_data, patient=patient, actor=request.user)
    return Response({'ok': True, 'data': patient_service.patient_to_dict(patient)})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def patient_appointments(request, pk: int):
    q = ListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    patient = patient_service.get_patient(pk)
    qs = appointment_service.list_appointments({'patient_id': patient.id}).order_by('-start', '-id')
    return paginated_response(qs, appointment_service.appointment_to_dict, q.validated_data)


@api_view(['PATCH'])
@permission_classes([IsAdminRole])
def patient_link_user(request, pk: int):
    """Link the record to a site account; ``{"userId": null}`` unlinks it."""
    s = PatientLinkUserSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = patient_service.link_patient_to_user(pk, s.validated_data['user_id'], actor=request.user)
    return Response({'ok': True, 'data': patient_service.patient_to_dict(patient)})
