"""Role-based permission defaults with per-user overrides."""

from typing import Dict

from django.db import transaction

from apps.accounts.models import User, StaffPermission, StaffRole
from .exceptions import UnknownPermissionError


ROLE_PERMISSION_DEFAULTS: Dict[str, Dict[str, bool]] = {
    'view_clinic_management': {
        StaffRole.ADMIN: True,
    },
    'view_sales_report': {
        StaffRole.ADMIN: True,
    },
    'manage_users': {
        StaffRole.ADMIN: True,
    },
    'cancel_visit': {
        StaffRole.ADMIN: True,
        StaffRole.DOCTOR: True,
        StaffRole.NURSE: True,
        StaffRole.RECEPTIONIST: True,
    },
    'adjust_stock': {
        StaffRole.ADMIN: True,
        StaffRole.DOCTOR: True,
    },
    'approve_purchase_orders': {
        StaffRole.ADMIN: True,
    },
    'manage_procurement': {
        StaffRole.ADMIN: True,
        StaffRole.DOCTOR: True,
        StaffRole.NURSE: True,
    },
}

PERMISSION_TYPES = tuple(ROLE_PERMISSION_DEFAULTS.keys())


def get_role_defaults(role: str) -> Dict[str, bool]:
    """Return the default permission map for a role."""
    return {
        permission: by_role.get(role, False)
        for permission, by_role in ROLE_PERMISSION_DEFAULTS.items()
    }


def get_effective_permissions(user: User) -> Dict[str, bool]:
    """
    Resolve a user's permissions.

    Role defaults are overlaid with the user's StaffPermission rows.
    Superusers hold every permission regardless of overrides.

    Args:
        user: Staff member

    Returns:
        Dict mapping permission type to bool
    """
    if user.is_superuser:
        return {permission: True for permission in PERMISSION_TYPES}

    permissions = get_role_defaults(user.role)
    for override in StaffPermission.objects.filter(user=user):
        if override.permission_type in permissions:
            permissions[override.permission_type] = override.permission_value
    return permissions


def has_clinic_permission(user: User, permission: str) -> bool:
    """Check a single permission for an authenticated user."""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    if permission not in ROLE_PERMISSION_DEFAULTS:
        return False
    override = user.staff_permissions.filter(permission_type=permission).first()
    if override is not None:
        return override.permission_value
    return ROLE_PERMISSION_DEFAULTS[permission].get(user.role, False)


@transaction.atomic
def set_staff_permissions(*, user: User, permissions: Dict[str, bool]) -> Dict[str, bool]:
    """
    Upsert permission overrides for a staff member.

    An override equal to the role default is removed instead of stored.

    Args:
        user: Staff member to update
        permissions: Mapping of permission type to bool

    Returns:
        The user's effective permissions after the update

    Raises:
        UnknownPermissionError: If a permission type is not recognised
    """
    unknown = [p for p in permissions if p not in ROLE_PERMISSION_DEFAULTS]
    if unknown:
        raise UnknownPermissionError(f"Unknown permission(s): {', '.join(sorted(unknown))}")

    defaults = get_role_defaults(user.role)
    for permission, value in permissions.items():
        if bool(value) == defaults[permission]:
            StaffPermission.objects.filter(user=user, permission_type=permission).delete()
            continue
        StaffPermission.objects.update_or_create(
            user=user,
            permission_type=permission,
            defaults={'permission_value': bool(value)},
        )

    return get_effective_permissions(user)
