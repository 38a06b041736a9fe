import logging

from django.db.models import Q
from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.accounts.permissions import CanAdjustStock, CanManageProcurement
from apps.accounts.services import has_clinic_permission
from apps.clinic.serializers import price_display_context
from .models import Medication, StockMovement, MovementType, ReorderSuggestion
from .serializers import (
    MedicationFilterSerializer,
    MedicationInputSerializer,
    MedicationSerializer,
    MedicationListSerializer,
    DuplicateCheckSerializer,
    StockMovementInputSerializer,
    StockMovementFilterSerializer,
    StockMovementSerializer,
    StockAdjustmentSerializer,
    BatchFilterSerializer,
    BatchSerializer,
    FifoRecommendationSerializer,
    AlertFilterSerializer,
    AlertSerializer,
    HistoricalCostSerializer,
    ReorderSuggestionSerializer,
    SuggestionStatusSerializer,
    ExportFormatSerializer,
    MedicationImportSerializer,
)
from .services import (
    InventoryServiceError,
    MedicationNotFoundError,
    InsufficientStockError,
    StockAdjustmentPermissionError,
    record_stock_movement,
    adjust_stock_level,
    get_stock_history,
    get_stock_summary,
    get_batches,
    get_batch_statistics,
    get_fifo_recommendations,
    get_expiry_alerts,
    get_alert_summary,
    calculate_inventory_value,
    recalculate_average_cost,
    get_cost_history,
    update_historical_cost,
    compare_purchase_prices,
    find_similar_medications,
    create_medication,
    update_medication,
    deactivate_medication,
    generate_reorder_suggestions,
    update_suggestion_status,
    export_medications,
    import_medications,
)

logger = logging.getLogger(__name__)

WRITE_ACTIONS = ('create', 'update', 'partial_update', 'destroy')


class InventoryPagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200


def _error_response(error):
    """Map an inventory service error to an error response."""
    if isinstance(error, MedicationNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, StockAdjustmentPermissionError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, InsufficientStockError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.warning("Inventory request rejected: %s", error)
    return Response({'error': str(error)}, status=code)


# =============================================================================
# Medications
# =============================================================================

class MedicationViewSet(viewsets.ModelViewSet):
    """
    ViewSet for medications.

    list / retrieve: any staff member
    create / update / destroy: procurement managers (destroy deactivates)
    history: stock movements, newest first
    adjust: set stock to a counted level (adjust_stock)
    cost_history / price_comparison / recalculate_cost: costing
    similar: fuzzy duplicate check by name
    export / import: CSV or XLSX
    """

    queryset = Medication.objects.prefetch_related('tier_prices__tier')
    serializer_class = MedicationSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = InventoryPagination

    def get_permissions(self):
        if self.action in WRITE_ACTIONS + ('recalculate_cost', 'import_file'):
            return [IsAuthenticated(), CanManageProcurement()]
        if self.action == 'adjust':
            return [IsAuthenticated(), CanAdjustStock()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == 'list':
            return MedicationListSerializer
        return MedicationSerializer

    def get_serializer_context(self):
        context = super().get_serializer_context()
        if getattr(self, 'swagger_fake_view', False):
            return context
        context.update(price_display_context(self.request.query_params))
        return context

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != 'list':
            return queryset

        filter_serializer = MedicationFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        if not params.get('include_inactive'):
            queryset = queryset.filter(is_active=True)
        if params.get('category'):
            queryset = queryset.filter(category__iexact=params['category'])
        if params.get('search'):
            term = params['search']
            queryset = queryset.filter(
                Q(name__icontains=term) |
                Q(generic_name__icontains=term) |
                Q(brand_name__icontains=term)
            )
        if params.get('low_stock'):
            low_ids = [m.id for m in queryset if m.stock_level <= m.low_stock_threshold]
            queryset = queryset.filter(id__in=low_ids)
        return queryset

    @extend_schema(request=MedicationInputSerializer, responses={201: MedicationSerializer})
    def create(self, request, *args, **kwargs):
        serializer = MedicationInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            medication = create_medication(created_by=request.user, **serializer.validated_data)
        except InventoryServiceError as e:
            return _error_response(e)
        return Response(MedicationSerializer(medication).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=MedicationInputSerializer, responses={200: MedicationSerializer})
    def update(self, request, *args, **kwargs):
        medication = self.get_object()
        serializer = MedicationInputSerializer(data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)

        fields = dict(serializer.validated_data)
        for create_only in ('opening_stock', 'batch_number', 'expiry_date'):
            fields.pop(create_only, None)
        try:
            medication = update_medication(medication_id=medication.id, **fields)
        except InventoryServiceError as e:
            return _error_response(e)
        return Response(MedicationSerializer(medication).data)

    def destroy(self, request, *args, **kwargs):
        medication = self.get_object()
        deactivate_medication(medication_id=medication.id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        """GET /api/inventory/medications/{id}/history/?limit=50"""
        medication = self.get_object()
        limit = request.query_params.get('limit')
        movements = get_stock_history(
            medication_id=medication.id,
            limit=int(limit) if limit and limit.isdigit() else None
        )
        return Response(StockMovementSerializer(movements, many=True).data)

    @extend_schema(request=StockAdjustmentSerializer, responses={201: StockMovementSerializer})
    @action(detail=True, methods=['post'])
    def adjust(self, request, pk=None):
        """
        Set stock-on-hand to a counted level.

        POST /api/inventory/medications/{id}/adjust/
        Body: {"new_level": 40, "reason_code": "cycle_count", "notes": ""}
        """
        medication = self.get_object()
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            movement = adjust_stock_level(
                medication_id=medication.id,
                user=request.user,
                **serializer.validated_data
            )
        except InventoryServiceError as e:
            return _error_response(e)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get'], url_path='cost-history')
    def cost_history(self, request, pk=None):
        """GET /api/inventory/medications/{id}/cost-history/"""
        medication = self.get_object()
        receipts = get_cost_history(medication_id=medication.id)
        return Response({
            'medication_id': medication.id,
            'average_cost': medication.average_cost,
            'receipts': StockMovementSerializer(receipts, many=True).data,
        })

    @action(detail=True, methods=['get'], url_path='price-comparison')
    def price_comparison(self, request, pk=None):
        """GET /api/inventory/medications/{id}/price-comparison/"""
        medication = self.get_object()
        return Response(compare_purchase_prices(medication_id=medication.id))

    @action(detail=True, methods=['post'], url_path='recalculate-cost')
    def recalculate_cost(self, request, pk=None):
        """POST /api/inventory/medications/{id}/recalculate-cost/"""
        medication = recalculate_average_cost(medication_id=self.get_object().id)
        return Response(MedicationSerializer(medication).data)

    @extend_schema(parameters=[DuplicateCheckSerializer])
    @action(detail=False, methods=['get'])
    def similar(self, request):
        """
        Possible duplicates of a medication name.

        GET /api/inventory/medications/similar/?name=Paracetamol
        """
        serializer = DuplicateCheckSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        matches = find_similar_medications(
            name=serializer.validated_data['name'],
            exclude_id=serializer.validated_data.get('exclude_id')
        )
        return Response([
            {'id': medication.id, 'name': medication.name, 'score': score}
            for medication, score in matches
        ])

    @extend_schema(parameters=[ExportFormatSerializer])
    @action(detail=False, methods=['get'])
    def export(self, request):
        """GET /api/inventory/medications/export/?file_type=xlsx"""
        serializer = ExportFormatSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        return export_medications(fmt=serializer.validated_data['file_type'])

    @extend_schema(request=MedicationImportSerializer)
    @action(
        detail=False,
        methods=['post'],
        url_path='import',
        parser_classes=[MultiPartParser, FormParser]
    )
    def import_file(self, request):
        """
        Import medications from CSV or XLSX.

        POST /api/inventory/medications/import/ (multipart, field "file")
        """
        serializer = MedicationImportSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = import_medications(file=serializer.validated_data['file'], user=request.user)
        except InventoryServiceError as e:
            return _error_response(e)

        response_status = status.HTTP_400_BAD_REQUEST if result['errors'] else status.HTTP_200_OK
        return Response(result, status=response_status)


# =============================================================================
# Stock movements
# =============================================================================

class StockMovementViewSet(mixins.CreateModelMixin,
                           mixins.ListModelMixin,
                           mixins.RetrieveModelMixin,
                           viewsets.GenericViewSet):
    """
    Stock movements are append-only.

    create: record a receipt, dispense, expiry, damage or adjustment
    """

    queryset = StockMovement.objects.select_related('medication', 'created_by', 'purchase_order')
    serializer_class = StockMovementSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = InventoryPagination

    def get_queryset(self):
        queryset = super().get_queryset()

        filter_serializer = StockMovementFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        if params.get('medication'):
            queryset = queryset.filter(medication_id=params['medication'])
        if params.get('movement_type'):
            queryset = queryset.filter(movement_type=params['movement_type'])
        if params.get('batch_number'):
            queryset = queryset.filter(batch_number__iexact=params['batch_number'])
        if 'date_from' in params:
            queryset = queryset.filter(created_at__date__gte=params['date_from'])
        if 'date_to' in params:
            queryset = queryset.filter(created_at__date__lte=params['date_to'])
        return queryset

    @extend_schema(request=StockMovementInputSerializer, responses={201: StockMovementSerializer})
    def create(self, request, *args, **kwargs):
        serializer = StockMovementInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if (data['movement_type'] == MovementType.ADJUSTMENT and
                not has_clinic_permission(request.user, 'adjust_stock')):
            return Response(
                {'error': CanAdjustStock.message},
                status=status.HTTP_403_FORBIDDEN
            )

        try:
            movement = record_stock_movement(created_by=request.user, **data)
        except InventoryServiceError as e:
            return _error_response(e)
        return Response(StockMovementSerializer(movement).data, status=status.HTTP_201_CREATED)


# =============================================================================
# Reorder suggestions
# =============================================================================

class ReorderSuggestionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    generate: POST to create suggestions for low-stock medications
    set_status: POST {"status": "approved"}
    """

    queryset = ReorderSuggestion.objects.select_related('medication', 'supplier')
    serializer_class = ReorderSuggestionSerializer
    permission_classes = [IsAuthenticated, CanManageProcurement]

    def get_queryset(self):
        queryset = super().get_queryset()
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @action(detail=False, methods=['post'])
    def generate(self, request):
        """POST /api/inventory/reorder-suggestions/generate/"""
        created = generate_reorder_suggestions()
        return Response(
            ReorderSuggestionSerializer(created, many=True).data,
            status=status.HTTP_201_CREATED
        )

    @extend_schema(request=SuggestionStatusSerializer, responses={200: ReorderSuggestionSerializer})
    @action(detail=True, methods=['post'], url_path='status')
    def set_status(self, request, pk=None):
        """POST /api/inventory/reorder-suggestions/{id}/status/"""
        suggestion = self.get_object()
        serializer = SuggestionStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            suggestion = update_suggestion_status(
                suggestion_id=suggestion.id,
                status=serializer.validated_data['status']
            )
        except InventoryServiceError as e:
            return _error_response(e)
        return Response(ReorderSuggestionSerializer(suggestion).data)


# =============================================================================
# Batches, alerts, valuation
# =============================================================================

@extend_schema(
    parameters=[BatchFilterSerializer],
    description="Current batches with stock on hand, plus statistics.",
    tags=['inventory'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def batch_list(request):
    """GET /api/inventory/batches/?status=expiring_soon&sort_by=value"""
    filter_serializer = BatchFilterSerializer(data=request.query_params)
    filter_serializer.is_valid(raise_exception=True)
    params = filter_serializer.validated_data

    batches = get_batches(
        search=params.get('search'),
        medication_id=params.get('medication'),
        status=params.get('status'),
        sort_by=params['sort_by'],
    )
    return Response({
        'statistics': get_batch_statistics(batches),
        'batches': BatchSerializer(batches, many=True).data,
    })


@extend_schema(
    description="Dispense-first order for medications held in several batches.",
    tags=['inventory'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def fifo_recommendations(request):
    """GET /api/inventory/batches/fifo/?limit=all"""
    limit = request.query_params.get('limit', '5')
    if limit == 'all':
        limit = None
    elif limit.isdigit():
        limit = int(limit)
    else:
        return Response({'error': 'limit must be a number or "all"'}, status=status.HTTP_400_BAD_REQUEST)

    recommendations = get_fifo_recommendations(limit=limit)
    return Response(FifoRecommendationSerializer(recommendations, many=True).data)


@extend_schema(
    parameters=[AlertFilterSerializer],
    description="Expiry and stock alerts, most urgent first.",
    tags=['inventory'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def alert_list(request):
    """GET /api/inventory/alerts/?priority=critical"""
    filter_serializer = AlertFilterSerializer(data=request.query_params)
    filter_serializer.is_valid(raise_exception=True)
    params = filter_serializer.validated_data

    alerts = get_expiry_alerts(
        alert_type=params.get('alert_type'),
        priority=params.get('priority'),
    )
    return Response({
        'summary': get_alert_summary(alerts),
        'alerts': AlertSerializer(alerts, many=True).data,
    })


@extend_schema(description="Inventory headline numbers.", tags=['inventory'])
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def stock_summary(request):
    """GET /api/inventory/summary/"""
    return Response(get_stock_summary())


@extend_schema(
    description="Stock value at cost price and at moving-average cost.",
    tags=['inventory'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, CanManageProcurement])
def inventory_valuation(request):
    """GET /api/inventory/valuation/?category=Analgesic"""
    return Response(calculate_inventory_value(category=request.query_params.get('category')))


@extend_schema(
    request=HistoricalCostSerializer,
    responses={200: StockMovementSerializer},
    description="Correct the unit cost of a past receipt and rebuild the average cost.",
    tags=['inventory'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated, CanManageProcurement])
def historical_cost(request):
    """POST /api/inventory/historical-cost/"""
    serializer = HistoricalCostSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    if not StockMovement.objects.filter(id=serializer.validated_data['movement_id']).exists():
        return Response({'error': 'Stock movement not found'}, status=status.HTTP_404_NOT_FOUND)

    try:
        movement = update_historical_cost(
            movement_id=serializer.validated_data['movement_id'],
            new_unit_cost=serializer.validated_data['unit_cost'],
            user=request.user,
        )
    except InventoryServiceError as e:
        return _error_response(e)
    return Response(StockMovementSerializer(movement).data)
