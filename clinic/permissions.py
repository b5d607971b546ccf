"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS


def is_admin_user(user) -> bool:
    return bool(user and user.is_authenticated and (getattr(user, "role", None) == "admin" or user.is_superuser))


class IsAdminRole(BasePermission):
    """Allow access only to administrators (role admin or Django superuser)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return is_admin_user(getattr(request, "user", None))


class IsApproved(BasePermission):
    """Authenticated users whose account has been approved (admins always are)."""
    message = "Your account is pending approval."

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return False
        return bool(user.is_approved or is_admin_user(user))


class IsAdminOrReadOnly(BasePermission):
    """Public reads, administrator writes."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return True
        return is_admin_user(getattr(request, "user", None))


class IsAdminOrCreateOnly(BasePermission):
    """Anyone may submit (POST) a public form; everything else is for administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method == "POST":
            return True
        return is_admin_user(getattr(request, "user", None))
