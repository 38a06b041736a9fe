"""Domain-specific exceptions for clinic configuration services."""


class ClinicServiceError(Exception):
    """Base exception for clinic services."""
    pass


class UnknownSettingError(ClinicServiceError):
    """Raised when a setting category or key is not registered."""
    pass


class InvalidSettingValueError(ClinicServiceError):
    """Raised when a setting value fails validation."""
    pass


class InvalidLogoError(ClinicServiceError):
    """Raised when an uploaded logo has the wrong type or size."""
    pass


class PriceTierNotFoundError(ClinicServiceError):
    """Raised when a referenced price tier does not exist."""
    pass


class DuplicateTierError(ClinicServiceError):
    """Raised when a tier with the same name already exists."""
    pass


class TierInUseError(ClinicServiceError):
    """Raised when deleting a tier still referenced by pricing rows."""
    pass


class InvalidPriceRangeError(ClinicServiceError):
    """Raised when price_from exceeds price_to."""
    pass
