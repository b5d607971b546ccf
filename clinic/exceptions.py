"""
Domain errors and the project-wide DRF exception handler.

Services raise the exceptions below; views let them propagate and the
handler turns every error into the ``{'ok': False, 'error': {...}}``
envelope the front-end expects.
"""
from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class ValidationError(APIException):
    """Request is well formed but violates a business rule (400)."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request.'
    default_code = 'validation_error'


class ConflictError(APIException):
    """Appointment overlaps an existing non-cancelled booking (409)."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The requested time slot is no longer available.'
    default_code = 'conflict'


class NotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class CalendarSyncError(Exception):
    """An external calendar feed could not be fetched, parsed or pushed."""


# Fallback codes for errors without a specific default_code (Http404, serializer errors).
_CODES = {
    400: 'validation_error',
    401: 'not_authenticated',
    403: 'permission_denied',
    404: 'not_found',
    405: 'method_not_allowed',
    409: 'conflict',
    429: 'throttled',
}


def _message(data):
    if isinstance(data, dict):
        if 'detail' in data and len(data) == 1:
            return str(data['detail'])
        return data
    if isinstance(data, list):
        return data[0] if len(data) == 1 else data
    return str(data)


def api_exception_handler(exc, context):
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception('Unhandled error in %s', context.get('view').__class__.__name__)
        return Response(
            {'ok': False, 'error': {'code': 'server_error', 'message': 'Internal server error.'}},
            status=500,
        )
    code = getattr(exc, 'default_code', None)
    if not isinstance(code, str) or code == 'invalid':
        code = _CODES.get(resp.status_code, 'api_error')
    resp.data = {'ok': False, 'error': {'code': code, 'message': _message(resp.data)}}
    return resp
