"""Staff management service - create, update and deactivate clinic staff."""

import logging
from typing import Optional

from django.db import transaction
from django.contrib.auth import get_user_model

from apps.accounts.models import StaffRole
from apps.clinic.services import get_setting_value
from .exceptions import (
    DuplicateEmailError,
    StaffLimitExceededError,
    SelfDeactivationError,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def _check_staff_limits(role: str, exclude_id=None) -> None:
    """Raise if adding an active member with ``role`` would exceed clinic limits."""
    active = User.objects.filter(is_active=True, is_superuser=False)
    if exclude_id:
        active = active.exclude(id=exclude_id)

    max_staff = int(get_setting_value('staff', 'max_staff_members'))
    if active.count() >= max_staff:
        raise StaffLimitExceededError(
            f"Staff limit reached ({max_staff} active members)"
        )

    if role == StaffRole.DOCTOR:
        max_doctors = int(get_setting_value('staff', 'max_doctors'))
        if active.filter(role=StaffRole.DOCTOR).count() >= max_doctors:
            raise StaffLimitExceededError(
                f"Doctor limit reached ({max_doctors} active doctors)"
            )


@transaction.atomic
def create_staff_member(
    *,
    email: str,
    password: str,
    role: Optional[str] = None,
    first_name: str = '',
    last_name: str = '',
    display_name: str = '',
    phone: str = ''
) -> User:
    """
    Create a clinic staff member.

    When no role is given the clinic's ``staff.default_user_role`` setting
    is used.

    Args:
        email: Login email (unique, case-insensitive)
        password: Initial password
        role: One of StaffRole values
        first_name: First name
        last_name: Last name
        display_name: Optional display name
        phone: Contact number

    Returns:
        Created User instance

    Raises:
        DuplicateEmailError: If the email is already registered
        StaffLimitExceededError: If staff/doctor limits would be exceeded
    """
    if User.objects.filter(email__iexact=email).exists():
        raise DuplicateEmailError(f"A staff member with email {email} already exists")

    role = role or get_setting_value('staff', 'default_user_role')
    _check_staff_limits(role)

    user = User.objects.create_user(
        email=email,
        password=password,
        role=role,
        first_name=first_name,
        last_name=last_name,
        display_name=display_name,
        phone=phone,
    )
    logger.info("Created staff member %s with role %s", user.email, role)
    return user


@transaction.atomic
def update_staff_member(*, user: User, **fields) -> User:
    """
    Update profile fields and role of a staff member.

    Raises:
        DuplicateEmailError: If the new email belongs to someone else
        StaffLimitExceededError: If promoting to doctor exceeds the doctor limit
    """
    email = fields.get('email')
    if email and User.objects.filter(email__iexact=email).exclude(id=user.id).exists():
        raise DuplicateEmailError(f"A staff member with email {email} already exists")

    new_role = fields.get('role')
    if new_role == StaffRole.DOCTOR and user.role != StaffRole.DOCTOR and user.is_active:
        max_doctors = int(get_setting_value('staff', 'max_doctors'))
        doctors = User.objects.filter(is_active=True, role=StaffRole.DOCTOR).count()
        if doctors >= max_doctors:
            raise StaffLimitExceededError(
                f"Doctor limit reached ({max_doctors} active doctors)"
            )

    password = fields.pop('password', None)
    for field, value in fields.items():
        setattr(user, field, value)
    if password:
        user.set_password(password)
    user.save()
    return user


@transaction.atomic
def deactivate_staff_member(*, user: User, performed_by: User) -> User:
    """Deactivate a staff member. Staff cannot deactivate themselves."""
    if user.id == performed_by.id:
        raise SelfDeactivationError("You cannot deactivate your own account")

    user.is_active = False
    user.save(update_fields=['is_active', 'updated_at'])
    logger.info("Staff member %s deactivated by %s", user.email, performed_by.email)
    return user


@transaction.atomic
def reactivate_staff_member(*, user: User) -> User:
    """Reactivate a staff member, respecting clinic limits."""
    if user.is_active:
        return user
    _check_staff_limits(user.role, exclude_id=user.id)
    user.is_active = True
    user.save(update_fields=['is_active', 'updated_at'])
    return user
