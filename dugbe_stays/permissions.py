from rest_framework.permissions import BasePermission

from .exceptions import AuthorizationError
from .models import AdminUser

_UNRESOLVED = object()


def admin_capability(request):
    """The caller's AdminUser record, looked up once per request and cached on it."""
    cached = getattr(request, "_admin_capability", _UNRESOLVED)
    if cached is not _UNRESOLVED:
        return cached

    user = getattr(request, "user", None)
    record = None
    if user is not None and user.is_authenticated:
        record = AdminUser.objects.filter(user=user).first()
    request._admin_capability = record
    return record


def is_admin(request):
    return admin_capability(request) is not None


class IsHotelAdmin(BasePermission):
    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        if not is_admin(request):
            raise AuthorizationError()
        return True


class IsHotelAdminOrReadOnly(IsHotelAdmin):
    def has_permission(self, request, view):
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return True
        return super().has_permission(request, view)
