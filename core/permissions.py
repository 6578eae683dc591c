"""
Role based permission classes
"""
from django.conf import settings
from rest_framework import permissions


def is_manager(user):
    return bool(
        user and user.is_authenticated
        and (user.is_superuser or getattr(user, 'role', None) in settings.MANAGER_ROLES)
    )


def is_admin(user):
    return bool(
        user and user.is_authenticated
        and (user.is_superuser or getattr(user, 'role', None) == 'ADMIN')
    )


class IsOrganizationMember(permissions.BasePermission):
    """
    Authenticated user attached to an organization
    """
    def has_permission(self, request, view):
        return bool(
            request.user and
            request.user.is_authenticated and
            getattr(request.user, 'organization_id', None)
        )


class IsManager(IsOrganizationMember):
    """
    Managers and admins of the user's organization
    """
    def has_permission(self, request, view):
        return super().has_permission(request, view) and is_manager(request.user)


class IsManagerOrReadOnly(IsOrganizationMember):
    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        if request.method in permissions.SAFE_METHODS:
            return True
        return is_manager(request.user)


class IsAdmin(IsOrganizationMember):
    def has_permission(self, request, view):
        return super().has_permission(request, view) and is_admin(request.user)
