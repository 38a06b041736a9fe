"""
Clinic settings service.

Settings are stored one row per (category, key) with the value serialized
to text and a ``data_type`` tag used to cast it back. Every key the clinic
understands is registered in ``SETTING_DEFINITIONS`` together with its
default, so reads never fail for a key that has not been saved yet.
"""

import json
import logging
from decimal import Decimal, ROUND_HALF_UP, ROUND_CEILING, ROUND_FLOOR
from typing import Any, Dict, Optional

from django.db import transaction

from apps.clinic.models import ClinicSetting, SettingDataType
from .exceptions import UnknownSettingError, InvalidSettingValueError

logger = logging.getLogger(__name__)


CURRENCY_CHOICES = ['MYR', 'USD', 'SGD', 'EUR', 'GBP']
PRICE_ROUNDING_CHOICES = ['nearest_cent', 'round_up', 'round_down']
RECEIPT_TEMPLATE_CHOICES = ['standard', 'detailed', 'minimal']
PAYMENT_METHOD_CHOICES = ['cash', 'card', 'bank_transfer', 'ewallet', 'cheque', 'insurance']
ROLE_CHOICES = ['admin', 'doctor', 'nurse', 'receptionist', 'locum']
WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

DEFAULT_OPERATING_HOURS = {
    day: {'open': '09:00', 'close': '18:00', 'closed': day == 'sunday'}
    for day in WEEKDAYS
}


def _setting(data_type, default, description='', choices=None,
             min_value=None, max_value=None, required=False):
    return {
        'data_type': data_type,
        'default': default,
        'description': description,
        'choices': choices,
        'min_value': min_value,
        'max_value': max_value,
        'required': required,
    }


SETTING_DEFINITIONS: Dict[str, Dict[str, dict]] = {
    'basic_info': {
        'clinic_name': _setting('string', 'My Clinic', 'Clinic display name', required=True),
        'license_number': _setting('string', '', 'Registration / license number'),
        'address_line1': _setting('string', ''),
        'address_line2': _setting('string', ''),
        'city': _setting('string', ''),
        'state': _setting('string', ''),
        'postal_code': _setting('string', ''),
        'country': _setting('string', 'Malaysia'),
        'phone_primary': _setting('string', ''),
        'phone_secondary': _setting('string', ''),
        'email': _setting('string', ''),
        'timezone': _setting('string', 'Asia/Kuala_Lumpur'),
        'operating_hours': _setting('json', DEFAULT_OPERATING_HOURS, 'Opening hours per weekday'),
        'logo_path': _setting('string', '', 'Stored path of the clinic logo'),
    },
    'payment': {
        'default_currency': _setting('string', 'MYR', choices=CURRENCY_CHOICES),
        'tax_rate': _setting('number', 0, 'Tax rate in percent', min_value=0, max_value=100),
        'price_rounding': _setting('string', 'nearest_cent', choices=PRICE_ROUNDING_CHOICES),
        'receipt_template': _setting('string', 'standard', choices=RECEIPT_TEMPLATE_CHOICES),
        'payment_methods': _setting('json', ['cash', 'card'], choices=PAYMENT_METHOD_CHOICES),
        'require_payment_confirmation': _setting('boolean', False),
    },
    'notifications': {
        'sms_enabled': _setting('boolean', False),
        'email_enabled': _setting('boolean', True),
        'patient_reminders': _setting('boolean', True),
        'reminder_hours_before': _setting('number', 24, min_value=1, max_value=168),
        'staff_notifications': _setting('boolean', True),
        'system_alerts': _setting('boolean', True),
    },
    'staff': {
        'max_doctors': _setting('number', 10, min_value=1, max_value=1000),
        'max_staff_members': _setting('number', 50, min_value=1, max_value=10000),
        'default_user_role': _setting('string', 'receptionist', choices=ROLE_CHOICES),
        'require_staff_approval': _setting('boolean', True),
    },
}


def _get_definition(category: str, key: str) -> dict:
    try:
        return SETTING_DEFINITIONS[category][key]
    except KeyError:
        raise UnknownSettingError(f"Unknown setting {category}.{key}")


def cast_setting_value(raw: str, data_type: str, default: Any = None) -> Any:
    """Convert a stored text value back to its Python type."""
    if data_type == SettingDataType.BOOLEAN:
        return raw == 'true'
    if data_type == SettingDataType.NUMBER:
        try:
            return float(raw)
        except (TypeError, ValueError):
            return 0
    if data_type == SettingDataType.JSON:
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            return default
    return raw


def serialize_setting_value(value: Any) -> str:
    """Convert a Python value to the text stored in ``setting_value``."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def get_setting_value(category: str, key: str, default: Any = None) -> Any:
    """
    Read a single setting, cast to its declared type.

    Args:
        category: Setting category (basic_info, payment, ...)
        key: Setting key within the category
        default: Fallback when neither a stored row nor a registered
            default exists

    Returns:
        The typed value
    """
    definition = SETTING_DEFINITIONS.get(category, {}).get(key)
    fallback = definition['default'] if definition and default is None else default

    row = ClinicSetting.objects.filter(
        setting_category=category,
        setting_key=key
    ).first()
    if row is None:
        return fallback
    return cast_setting_value(row.setting_value, row.data_type, fallback)


def get_category_settings(category: str) -> Dict[str, Any]:
    """Return all registered settings of a category with stored overrides applied."""
    if category not in SETTING_DEFINITIONS:
        raise UnknownSettingError(f"Unknown settings category {category}")

    values = {
        key: definition['default']
        for key, definition in SETTING_DEFINITIONS[category].items()
    }
    for row in ClinicSetting.objects.filter(setting_category=category):
        values[row.setting_key] = cast_setting_value(
            row.setting_value,
            row.data_type,
            values.get(row.setting_key)
        )
    return values


def validate_setting_value(category: str, key: str, value: Any) -> Any:
    """
    Validate a value against its registered definition.

    Returns:
        The normalized value

    Raises:
        UnknownSettingError: If the key is not registered
        InvalidSettingValueError: If the value is invalid
    """
    definition = _get_definition(category, key)
    data_type = definition['data_type']
    choices = definition['choices']

    if data_type == SettingDataType.BOOLEAN:
        if not isinstance(value, bool):
            raise InvalidSettingValueError(f"{key} must be true or false")
        return value

    if data_type == SettingDataType.NUMBER:
        if isinstance(value, bool):
            raise InvalidSettingValueError(f"{key} must be a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InvalidSettingValueError(f"{key} must be a number")
        if definition['min_value'] is not None and number < definition['min_value']:
            raise InvalidSettingValueError(f"{key} must be at least {definition['min_value']}")
        if definition['max_value'] is not None and number > definition['max_value']:
            raise InvalidSettingValueError(f"{key} must be at most {definition['max_value']}")
        return int(number) if number.is_integer() else number

    if data_type == SettingDataType.JSON:
        if not isinstance(value, (dict, list)):
            raise InvalidSettingValueError(f"{key} must be a JSON object or list")
        if choices and isinstance(value, list):
            invalid = [item for item in value if item not in choices]
            if invalid:
                raise InvalidSettingValueError(
                    f"Invalid {key}: {', '.join(map(str, invalid))}"
                )
        return value

    value = '' if value is None else str(value)
    if definition['required'] and not value.strip():
        raise InvalidSettingValueError(f"{key} is required")
    if choices and value not in choices:
        raise InvalidSettingValueError(
            f"{key} must be one of: {', '.join(choices)}"
        )
    return value


@transaction.atomic
def update_setting(*, category: str, key: str, value: Any, user=None) -> ClinicSetting:
    """
    Validate, serialize and upsert a single setting.

    Args:
        category: Setting category
        key: Setting key
        value: New Python value
        user: Staff member performing the change

    Returns:
        The saved ClinicSetting row
    """
    value = validate_setting_value(category, key, value)
    definition = _get_definition(category, key)

    setting, _ = ClinicSetting.objects.update_or_create(
        setting_category=category,
        setting_key=key,
        defaults={
            'setting_value': serialize_setting_value(value),
            'data_type': definition['data_type'],
            'description': definition['description'],
            'is_required': definition['required'],
            'updated_by': user,
        },
    )
    return setting


@transaction.atomic
def update_multiple_settings(*, category: str, values: Dict[str, Any], user=None) -> Dict[str, Any]:
    """
    Update several settings of one category atomically.

    All values are validated before anything is written, so an invalid
    value leaves the stored settings untouched.

    Returns:
        The category's settings after the update
    """
    if category not in SETTING_DEFINITIONS:
        raise UnknownSettingError(f"Unknown settings category {category}")

    normalized = {
        key: validate_setting_value(category, key, value)
        for key, value in values.items()
    }
    for key, value in normalized.items():
        update_setting(category=category, key=key, value=value, user=user)

    logger.info(
        "Updated %d %s setting(s) by %s",
        len(normalized),
        category,
        getattr(user, 'email', 'system')
    )
    return get_category_settings(category)


def apply_price_rounding(amount: Decimal, mode: Optional[str] = None) -> Decimal:
    """
    Round a price using the clinic's ``payment.price_rounding`` mode.

    ``nearest_cent`` rounds half-up to 0.01. ``round_up`` and ``round_down``
    round to the nearest 0.05 in the given direction, as cash payments
    settle in five-cent steps.
    """
    mode = mode or get_setting_value('payment', 'price_rounding')
    amount = Decimal(str(amount))

    if mode == 'round_up':
        return (amount / Decimal('0.05')).to_integral_value(rounding=ROUND_CEILING) * Decimal('0.05')
    if mode == 'round_down':
        return (amount / Decimal('0.05')).to_integral_value(rounding=ROUND_FLOOR) * Decimal('0.05')
    return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)
