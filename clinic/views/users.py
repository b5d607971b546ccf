from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from clinic.pagination import paginated_response
from clinic.permissions import IsAdminRole
from clinic.serializers.auth import UserApprovalSerializer, UserListQuerySerializer, UserRoleSerializer
from clinic.services import users as user_service


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_list(request):
    q = UserListQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    qs = user_service.list_users(
        approved=q.validated_data.get('approved'),
        role=q.validated_data.get('role'),
        q=q.validated_data.get('q'),
    )
    return paginated_response(qs, user_service.user_to_dict, q.validated_data)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_approval(request, pk: int):
    s = UserApprovalSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = user_service.set_approval(pk, s.validated_data['is_approved'], actor=request.user)
    return Response({'ok': True, 'data': user_service.user_to_dict(user)})


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_role(request, pk: int):
    s = UserRoleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = user_service.set_role(pk, s.validated_data['role'], actor=request.user)
    return Response({'ok': True, 'data': user_service.user_to_dict(user)})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def user_delete(request, pk: int):
    user_service.delete_user(pk, actor=request.user)
    return Response(status=status.HTTP_204_NO_CONTENT)
