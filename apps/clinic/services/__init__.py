"""Services for clinic configuration."""

from .exceptions import (
    ClinicServiceError,
    UnknownSettingError,
    InvalidSettingValueError,
    InvalidLogoError,
    PriceTierNotFoundError,
    DuplicateTierError,
    TierInUseError,
    InvalidPriceRangeError,
)
from .clinic_settings import (
    SETTING_DEFINITIONS,
    get_setting_value,
    get_category_settings,
    update_setting,
    update_multiple_settings,
    cast_setting_value,
    serialize_setting_value,
    apply_price_rounding,
)
from .logo import upload_clinic_logo, remove_clinic_logo
from .pricing import (
    create_price_tier,
    update_price_tier,
    delete_price_tier,
    set_service_pricing,
    resolve_price,
)
from .document_templates import (
    SMART_FIELDS,
    list_template_fields,
    render_template_text,
    render_document_template,
    create_document_template,
    update_document_template,
)

__all__ = [
    # Exceptions
    'ClinicServiceError',
    'UnknownSettingError',
    'InvalidSettingValueError',
    'InvalidLogoError',
    'PriceTierNotFoundError',
    'DuplicateTierError',
    'TierInUseError',
    'InvalidPriceRangeError',
    # Settings
    'SETTING_DEFINITIONS',
    'get_setting_value',
    'get_category_settings',
    'update_setting',
    'update_multiple_settings',
    'cast_setting_value',
    'serialize_setting_value',
    'apply_price_rounding',
    # Logo
    'upload_clinic_logo',
    'remove_clinic_logo',
    # Pricing
    'create_price_tier',
    'update_price_tier',
    'delete_price_tier',
    'set_service_pricing',
    'resolve_price',
    # Document templates
    'SMART_FIELDS',
    'list_template_fields',
    'render_template_text',
    'render_document_template',
    'create_document_template',
    'update_document_template',
]
