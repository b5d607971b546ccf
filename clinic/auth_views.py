"""
Authentication views.

Login starts a Django session for the browser console and also hands
out a DRF token and a JWT pair for API clients.  Self-registered
accounts cannot log in until an administrator approves them.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate, login, logout
from rest_framework import exceptions, status
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from clinic.serializers.auth import LoginSerializer, RegisterSerializer
from clinic.services.audit import log_action
from clinic.services.users import register_user, user_to_dict
from clinic.throttling import LoginRateThrottle, PublicFormRateThrottle

logger = logging.getLogger(__name__)


def _client_ip(request):
    return request.META.get('REMOTE_ADDR')


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([PublicFormRateThrottle])
def register_view(request):
    s = RegisterSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    user = register_user(**s.validated_data)
    logger.info('New account %s registered, waiting for approval', user.id)
    return Response({
        'ok': True,
        'data': user_to_dict(user),
        'message': 'Account created. An administrator must approve it before you can log in.',
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
@throttle_classes([LoginRateThrottle])
def login_view(request):
    """Username/password login.  Unapproved non-admin accounts get 403."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']

    user = authenticate(request._request, username=username, password=s.validated_data['password'])
    if not user:
        log_action(user=None, action='login', object_type='user', object_id=None,
                   detail={'result': 'fail', 'username': username, 'ip': _client_ip(request)})
        raise exceptions.AuthenticationFailed('Invalid username or password.')
    if not (user.is_approved or user.is_admin):
        log_action(user=user, action='login', object_type='user', object_id=user.id,
                   detail={'result': 'not_approved', 'ip': _client_ip(request)})
        raise exceptions.PermissionDenied('Your account is pending approval.')

    login(request._request, user)
    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': _client_ip(request)})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': user_to_dict(user),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def logout_view(request):
    """End the session, drop the DRF token and blacklist refresh tokens.

    With a ``refresh`` value only that token is blacklisted; otherwise
    every outstanding refresh token of the user is.
    """
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
            count = 1
        except TokenError:
            pass
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    Token.objects.filter(user=request.user).delete()
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    logout(request._request)
    return Response({'ok': True, 'blacklisted': count})


@api_view(['POST'])
@permission_classes([AllowAny])
def refresh_view(request):
    """Return a new access token from a refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    data = dict(resp.data)
    if 'access' in data and 'jwt_access' not in data:
        data['jwt_access'] = data.pop('access')
        data['ok'] = True
    return Response(data, status=resp.status_code)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    data = user_to_dict(request.user)
    profile = getattr(request.user, 'doctor_profile', None)
    data['doctorId'] = profile.id if profile else None
    return Response({'ok': True, 'data': data})
