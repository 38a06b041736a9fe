"""
Domain exceptions for analytics app.

These exceptions are raised by the report and procurement analytics
services and represent invalid requests, separate from HTTP concerns.

Exception Hierarchy:
    AnalyticsServiceError (base)
    ├── UnknownReportError
    ├── InvalidDateRangeError
    └── UnsupportedExportFormatError

Usage:
    from apps.analytics.exceptions import UnknownReportError

    if template not in REPORT_TEMPLATES:
        raise UnknownReportError(f"Unknown report: {template}")
"""


class AnalyticsServiceError(Exception):
    """
    Base exception for all analytics service errors.

    Views catch this to turn any analytics error into a 400 response:

        try:
            report = InventoryReports.build('turnover')
        except AnalyticsServiceError as e:
            return Response({'error': str(e)}, status=400)
    """

    pass


class UnknownReportError(AnalyticsServiceError):
    """
    Raised when a report template name is not recognised.

    Valid templates: stock_aging, consumption, cost_analysis, expiry,
    valuation, turnover.
    """

    pass


class InvalidDateRangeError(AnalyticsServiceError):
    """
    Raised when a date range is invalid.

    Typically when start_date is after end_date.
    """

    pass


class UnsupportedExportFormatError(AnalyticsServiceError):
    """Raised when an export format other than csv or xlsx is requested."""

    pass
