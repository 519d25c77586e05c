"""
Permission classes for the caja endpoints.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

CASHIER_GROUP = "caja"


def is_cashier(user) -> bool:
    if not (user and user.is_authenticated):
        return False
    if user.is_staff or user.is_superuser:
        return True
    return user.groups.filter(name=CASHIER_GROUP).exists()


class IsCashier(BasePermission):
    """Allow ledger writes only to staff or members of the ``caja`` group."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return is_cashier(getattr(request, "user", None))


class ReadOnlyOrCashier(BasePermission):
    """Any authenticated user may read balances; writes need a cashier."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        if request.method in SAFE_METHODS:
            return bool(user and user.is_authenticated)
        return is_cashier(user)
