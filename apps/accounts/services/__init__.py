"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    InvalidCredentialsError,
    InactiveAccountError,
    UserNotFoundError,
    DuplicateEmailError,
    StaffLimitExceededError,
    UnknownPermissionError,
    SelfDeactivationError,
)
from .user_authentication import authenticate_user
from .staff_management import (
    create_staff_member,
    update_staff_member,
    deactivate_staff_member,
    reactivate_staff_member,
)
from .staff_permissions import (
    ROLE_PERMISSION_DEFAULTS,
    PERMISSION_TYPES,
    get_role_defaults,
    get_effective_permissions,
    has_clinic_permission,
    set_staff_permissions,
)

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'InvalidCredentialsError',
    'InactiveAccountError',
    'UserNotFoundError',
    'DuplicateEmailError',
    'StaffLimitExceededError',
    'UnknownPermissionError',
    'SelfDeactivationError',
    # Authentication
    'authenticate_user',
    # Staff
    'create_staff_member',
    'update_staff_member',
    'deactivate_staff_member',
    'reactivate_staff_member',
    # Permissions
    'ROLE_PERMISSION_DEFAULTS',
    'PERMISSION_TYPES',
    'get_role_defaults',
    'get_effective_permissions',
    'has_clinic_permission',
    'set_staff_permissions',
]
