"""Domain-specific exceptions for inventory services."""


class InventoryServiceError(Exception):
    """Base exception for inventory services."""
    pass


class MedicationNotFoundError(InventoryServiceError):
    """Raised when a medication does not exist or is inactive."""
    pass


class NoPriceTiersError(InventoryServiceError):
    """Raised when creating a medication before any price tier exists."""
    pass


class InvalidQuantityError(InventoryServiceError):
    """Raised when a movement quantity is zero or has the wrong sign."""
    pass


class InsufficientStockError(InventoryServiceError):
    """Raised when an outgoing movement exceeds stock-on-hand."""
    pass


class InvalidAdjustmentError(InventoryServiceError):
    """Raised when a stock adjustment is invalid (no change, bad reason)."""
    pass


class StockAdjustmentPermissionError(InventoryServiceError):
    """Raised when the user may not adjust stock levels."""
    pass


class NotAReceiptError(InventoryServiceError):
    """Raised when a cost update targets a non-receipt movement."""
    pass


class InvalidStatusTransitionError(InventoryServiceError):
    """Raised when a reorder suggestion cannot move to the requested status."""
    pass


class ImportFileError(InventoryServiceError):
    """Raised when an import file cannot be read."""
    pass
