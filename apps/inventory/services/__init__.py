"""Services for inventory business logic."""

from .exceptions import (
    InventoryServiceError,
    MedicationNotFoundError,
    NoPriceTiersError,
    InvalidQuantityError,
    InsufficientStockError,
    InvalidAdjustmentError,
    StockAdjustmentPermissionError,
    NotAReceiptError,
    InvalidStatusTransitionError,
    ImportFileError,
)
from .stock_management import (
    movement_delta,
    record_stock_movement,
    adjust_stock_level,
    get_stock_history,
    get_low_stock_medications,
    get_stock_summary,
    calculate_stock_from_movements,
    reconcile_stock_levels,
)
from .batch_tracking import (
    EXPIRED,
    EXPIRING_SOON,
    WARNING,
    GOOD,
    days_until,
    classify_expiry,
    aggregate_batches,
    get_batches,
    get_batch_statistics,
    get_fifo_recommendations,
)
from .expiry_alerts import (
    expiry_priority,
    get_expiry_alerts,
    get_alert_summary,
)
from .valuation import (
    value_medication,
    calculate_inventory_value,
    recalculate_average_cost,
    get_cost_history,
    update_historical_cost,
    compare_purchase_prices,
)
from .medication_management import (
    normalize_name,
    find_similar_medications,
    set_medication_pricing,
    create_medication,
    update_medication,
    deactivate_medication,
)
from .reorder import (
    average_daily_consumption,
    build_suggestion,
    generate_reorder_suggestions,
    update_suggestion_status,
)
from .medication_import import (
    medication_export_rows,
    export_medications,
    read_import_file,
    import_medications,
)

__all__ = [
    # Exceptions
    'InventoryServiceError',
    'MedicationNotFoundError',
    'NoPriceTiersError',
    'InvalidQuantityError',
    'InsufficientStockError',
    'InvalidAdjustmentError',
    'StockAdjustmentPermissionError',
    'NotAReceiptError',
    'InvalidStatusTransitionError',
    'ImportFileError',
    # Stock
    'movement_delta',
    'record_stock_movement',
    'adjust_stock_level',
    'get_stock_history',
    'get_low_stock_medications',
    'get_stock_summary',
    'calculate_stock_from_movements',
    'reconcile_stock_levels',
    # Batches
    'EXPIRED',
    'EXPIRING_SOON',
    'WARNING',
    'GOOD',
    'days_until',
    'classify_expiry',
    'aggregate_batches',
    'get_batches',
    'get_batch_statistics',
    'get_fifo_recommendations',
    # Alerts
    'expiry_priority',
    'get_expiry_alerts',
    'get_alert_summary',
    # Valuation
    'value_medication',
    'calculate_inventory_value',
    'recalculate_average_cost',
    'get_cost_history',
    'update_historical_cost',
    'compare_purchase_prices',
    # Medications
    'normalize_name',
    'find_similar_medications',
    'set_medication_pricing',
    'create_medication',
    'update_medication',
    'deactivate_medication',
    # Reorder
    'average_daily_consumption',
    'build_suggestion',
    'generate_reorder_suggestions',
    'update_suggestion_status',
    # Import / export
    'medication_export_rows',
    'export_medications',
    'read_import_file',
    'import_medications',
]
