import logging

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from apps.accounts.permissions import CanViewReports
from apps.inventory.services import (
    get_stock_summary,
    get_batches,
    get_batch_statistics,
    get_alert_summary,
    calculate_inventory_value,
)
from .analytics import InventoryReports, ProcurementAnalytics, REPORT_TEMPLATES
from .exports import export_report
from .serializers import (
    # Input serializers
    ReportQuerySerializer,
    PeriodQuerySerializer,
    # Response serializers
    ReportResponseSerializer,
    ProcurementSummarySerializer,
    InventorySummarySerializer,
    ErrorSerializer,
)
from .exceptions import AnalyticsServiceError

logger = logging.getLogger(__name__)


def _error_response(error):
    """Map an analytics error to a 400 response."""
    logger.warning("Analytics request rejected: %s", error)
    return Response({'error': str(error)}, status=status.HTTP_400_BAD_REQUEST)



@extend_schema(
    parameters=[
        OpenApiParameter('days', OpenApiTypes.INT, description='Reporting window in days', default=30),
        OpenApiParameter('export', OpenApiTypes.STR, description="'csv' or 'xlsx' to download the report"),
    ],
    responses={
        200: ReportResponseSerializer,
        400: ErrorSerializer,
    },
    description=f"Inventory report. Templates: {', '.join(REPORT_TEMPLATES)}.",
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, CanViewReports])
def inventory_report(request, template):
    """Build one inventory report - thin HTTP handler."""
    query_serializer = ReportQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)
    params = query_serializer.validated_data

    try:
        report = InventoryReports.build(template, days=params['days'])
        if params.get('export'):
            return export_report(report, params['export'])
    except AnalyticsServiceError as e:
        return _error_response(e)

    return Response(report)


@extend_schema(
    parameters=[
        OpenApiParameter('period', OpenApiTypes.STR, description='Month period (YYYY-MM)'),
        OpenApiParameter('start_date', OpenApiTypes.DATE, description='Start date (YYYY-MM-DD)'),
        OpenApiParameter('end_date', OpenApiTypes.DATE, description='End date (YYYY-MM-DD)'),
    ],
    responses={
        200: ProcurementSummarySerializer,
        400: ErrorSerializer,
    },
    description="Procurement spend, suppliers, status mix and lead times (default: last 12 months).",
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, CanViewReports])
def procurement_summary(request):
    """Procurement statistics - thin HTTP handler."""
    query_serializer = PeriodQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)
    params = query_serializer.validated_data

    try:
        data = ProcurementAnalytics.summary(
            start_date=params.get('start_date'),
            end_date=params.get('end_date'),
        )
    except AnalyticsServiceError as e:
        return _error_response(e)

    return Response(data)


@extend_schema(
    responses={200: InventorySummarySerializer},
    description="Inventory dashboard: stock counts, batch statistics, alert counts and valuation totals.",
    tags=['analytics'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, CanViewReports])
def inventory_summary(request):
    """Inventory dashboard in one request."""
    return Response({
        'stock': get_stock_summary(),
        'batches': get_batch_statistics(get_batches()),
        'alerts': get_alert_summary(),
        'valuation': calculate_inventory_value()['totals'],
    })
