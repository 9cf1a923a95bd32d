"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission


def _has_role(request, *roles) -> bool:
    user = getattr(request, "user", None)
    return bool(user and user.is_authenticated and getattr(user, "role", None) in roles)


class IsAdminRole(BasePermission):
    """Allow access only to administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, "admin")


class IsDoctorRole(BasePermission):
    """Allow access only to doctors."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, "doctor")


class IsDoctorOrAdmin(BasePermission):
    """Staff who may push notifications to other users."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, "doctor", "admin")
