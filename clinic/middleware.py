from django.contrib.auth import logout
from django.http import JsonResponse


class ApprovedUserMiddleware:
    """Drop session logins of accounts that are no longer approved.

    Approval can be revoked by an administrator while the user still
    holds a session cookie.  API requests made with such a session are
    logged out and answered with 403.
    """
    API_PREFIX = '/api/'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        user = getattr(request, 'user', None)
        if (
            (request.path or '').startswith(self.API_PREFIX)
            and user is not None
            and user.is_authenticated
            and not (user.is_approved or user.role == 'admin' or user.is_superuser)
        ):
            logout(request)
            return JsonResponse(
                {'ok': False, 'error': {'code': 'not_approved', 'message': 'Account pending approval.'}},
                status=403,
            )
        return self.get_response(request)
