"""
Role based permission classes.

``admin`` manages everything, ``doctor`` may write prescriptions,
``staff`` works with patients and reads everything else.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

ADMIN_ROLES = {"admin"}
PRESCRIBER_ROLES = {"admin", "doctor"}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    if getattr(user, "is_superuser", False):
        return "admin"
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to users with an administrative role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in ADMIN_ROLES


class IsPrescriberOrReadOnly(BasePermission):
    """Doctors and admins may write; everyone authenticated may read."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        role = _role(request)
        if role is None:
            return False
        return request.method in SAFE_METHODS or role in PRESCRIBER_ROLES


class IsAdminOrNotDelete(BasePermission):
    """DELETE is reserved for admins."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return request.method != "DELETE" or _role(request) in ADMIN_ROLES
