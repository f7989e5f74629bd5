"""
Role gating for the admin, manager and engineer surfaces.

A request passes only when the user has an approved, active profile with the
matching role.  Django superusers always count as admins.
"""
from rest_framework.permissions import BasePermission

from fleet.models import Profile


def active_profile(user):
    """Return the user's profile when it may act, else ``None``."""
    if not (user and user.is_authenticated):
        return None
    profile = getattr(user, 'profile', None) if hasattr(user, 'profile') else None
    if profile is None:
        return None
    if profile.approval_status != Profile.APPROVAL_APPROVED or not profile.is_active:
        return None
    return profile


class _RolePermission(BasePermission):
    role: str = ''

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        profile = active_profile(getattr(request, 'user', None))
        return bool(profile and profile.role == self.role)


class IsAdminRole(_RolePermission):
    """Allow access only to approved, active admins (or superusers)."""
    role = Profile.ROLE_ADMIN

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, 'user', None)
        if user and user.is_authenticated and user.is_superuser:
            return True
        return super().has_permission(request, view)


class IsRegionalManager(_RolePermission):
    """Regional manager role, or any active member flagged as a regional manager."""
    role = Profile.ROLE_REGIONAL_MANAGER

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        profile = active_profile(getattr(request, 'user', None))
        return bool(profile and (profile.role == self.role or profile.is_regional_manager))


class IsFieldEngineer(_RolePermission):
    role = Profile.ROLE_FIELD_ENGINEER
