"""
Custom authentication backends for token-based auth.

This module defines subclasses of Django REST framework's
``TokenAuthentication`` and simplejwt's ``JWTAuthentication``.  Keeping
them apart from the views avoids circular imports when the REST
framework imports authentication classes during initialisation.

Both reject accounts that are waiting for approval, so credentials
handed out before an administrator revoked the approval stop working
immediately.
"""
from __future__ import annotations

from rest_framework import authentication, exceptions
from rest_framework_simplejwt.authentication import JWTAuthentication as BaseJWTAuthentication


def _ensure_approved(user):
    if not (user.is_approved or user.role == 'admin' or user.is_superuser):
        raise exceptions.AuthenticationFailed('Account pending approval.')
    return user


class TokenAuthentication(authentication.TokenAuthentication):
    """Token authentication using the ``Token`` keyword."""

    keyword = 'Token'

    def authenticate_credentials(self, key):
        user, token = super().authenticate_credentials(key)
        return _ensure_approved(user), token


class JWTAuthentication(BaseJWTAuthentication):
    def get_user(self, validated_token):
        return _ensure_approved(super().get_user(validated_token))
