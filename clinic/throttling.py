from rest_framework.permissions import SAFE_METHODS
from rest_framework.throttling import AnonRateThrottle, SimpleRateThrottle


class SubmissionRateThrottle(AnonRateThrottle):
    """Anonymous throttle that only counts submissions, never reads."""

    def allow_request(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return super().allow_request(request, view)


class BookingRateThrottle(SubmissionRateThrottle):
    scope = 'booking'


class PublicFormRateThrottle(SubmissionRateThrottle):
    """Contact form and testimonial submissions from anonymous visitors."""
    scope = 'public_form'


class LoginRateThrottle(SimpleRateThrottle):
    scope = 'login'

    def get_cache_key(self, request, view):
        return self.cache_format % {'scope': self.scope, 'ident': self.get_ident(request)}
