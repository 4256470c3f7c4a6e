"""Custom permission classes used by the API."""
from __future__ import annotations

from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsAdminRole(BasePermission):
    """Only allow users whose role is ``ADMIN``."""

    message = "Forbidden"

    def has_permission(self, request, view) -> bool:
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_admin", False))


class IsAdminOrReadOnly(IsAdminRole):
    """Allow reads for signed-in users but restrict writes to admins."""

    def has_permission(self, request, view) -> bool:
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return super().has_permission(request, view)


class IsOwner(BasePermission):
    """Ensure the object belongs to the requesting user."""

    def has_object_permission(self, request, view, obj) -> bool:
        return getattr(obj, "user_id", None) == request.user.pk
