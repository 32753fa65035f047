"""
Aidat — Custom Permissions
A single administrator role, carried by the signed session token.
"""
from rest_framework.permissions import BasePermission

from .session import AdminSession


class IsDuesAdmin(BasePermission):
    """Request must carry a valid admin session token."""
    message = 'Bu işlem için yönetici girişi gerekiyor.'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False
        session = AdminSession.from_request(request)
        return session is not None and session.is_admin
