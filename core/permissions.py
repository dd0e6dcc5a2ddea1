from rest_framework.permissions import BasePermission


def is_reviewer(user) -> bool:
    """Reviewer or admin (role already resolved by authentication)."""
    if not user or not user.is_authenticated:
        return False
    return bool(getattr(user, "is_reviewer", False))


def is_admin_role(user) -> bool:
    if not user or not user.is_authenticated:
        return False
    return bool(getattr(user, "is_admin_role", False))


class IsReviewer(BasePermission):
    """
    Reviewer-only endpoints (submission review, bulk review).
    Admins pass as well.
    """
    message = "Reviewer role required."

    def has_permission(self, request, view):
        return is_reviewer(request.user)


class IsAdminRole(BasePermission):
    message = "Admin role required."

    def has_permission(self, request, view):
        return is_admin_role(request.user)
