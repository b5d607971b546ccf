from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from clinic.exceptions import NotFoundError
from clinic.permissions import IsAdminOrReadOnly, is_admin_user
from clinic.serializers.insurance import InsuranceCompanySerializer, InsuranceListQuerySerializer
from clinic.services import insurance as insurance_service


@api_view(['GET', 'POST'])
@permission_classes([IsAdminOrReadOnly])
def insurance_companies(request):
    """Active insurers are public so the booking form can offer them."""
    if request.method == 'GET':
        q = InsuranceListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        qs = insurance_service.list_insurance_companies(
            q=q.validated_data.get('q'),
            include_inactive=is_admin_user(request.user) and q.validated_data['include_inactive'],
        )
        return Response({'ok': True, 'data': [insurance_service.insurance_to_dict(c) for c in qs]})

    s = InsuranceCompanySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    company = insurance_service.save_insurance_company(s.validated_data, actor=request.user)
    return Response({'ok': True, 'data': insurance_service.insurance_to_dict(company)},
                    status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAdminOrReadOnly])
def insurance_company_detail(request, pk: int):
    company = insurance_service.get_insurance_company(pk)
    if request.method == 'GET':
        if not (company.active or is_admin_user(request.user)):
            raise NotFoundError('Insurance company not found.')
        return Response({'ok': True, 'data': insurance_service.insurance_to_dict(company)})

    if request.method == 'DELETE':
        if insurance_service.delete_insurance_company(pk, actor=request.user):
            return Response(status=status.HTTP_204_NO_CONTENT)
        # Insurers still assigned to patients are archived instead.
        return Response({'ok': True, 'archived': True})

    s = InsuranceCompanySerializer(data=request.data, partial=request.method == 'PATCH')
    s.is_valid(raise_exception=True)
    company = insurance_service.save_insurance_company(s.validated_data, company=company, actor=request.user)
    return Response({'ok': True, 'data': insurance_service.insurance_to_dict(company)})
