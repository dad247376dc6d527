# logistics/permissions.py
from rest_framework import permissions


def _role(request):
    user = getattr(request, "user", None)
    if not user or not user.is_authenticated:
        return None
    return user.role


class IsPlatformAdmin(permissions.BasePermission):
    # admin actions: licence approval, withdrawals, order reject/refund
    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and user.is_platform_admin)


class IsRider(permissions.BasePermission):
    def has_permission(self, request, view):
        return _role(request) == "RIDER"


class IsVendor(permissions.BasePermission):
    def has_permission(self, request, view):
        return _role(request) == "VENDOR"


class IsCustomerOrVendor(permissions.BasePermission):
    """
    Customers place their own orders; vendors place prescription orders for a user.
    """
    def has_permission(self, request, view):
        return _role(request) in ("CUSTOMER", "VENDOR")


class IsPharmacyOwnerOrReadOnly(permissions.BasePermission):
    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.owner_id == request.user.id
