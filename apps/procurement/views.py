import logging

from django.db.models import Q
from django.http import FileResponse
from rest_framework import viewsets, mixins, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.pagination import PageNumberPagination
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.accounts.permissions import CanManageProcurement, CanApprovePurchaseOrders
from .models import (
    Supplier,
    PurchaseOrder,
    ApprovalWorkflow,
    QuotationRequest,
    Quotation,
    SupplierCommunication,
    CommunicationTemplate,
    Document,
)
from .serializers import (
    SupplierInputSerializer,
    SupplierFilterSerializer,
    SupplierSerializer,
    PurchaseOrderInputSerializer,
    PurchaseOrderFilterSerializer,
    PurchaseOrderSerializer,
    PurchaseOrderListSerializer,
    StatusChangeSerializer,
    ReasonSerializer,
    MarkOrderedSerializer,
    PaymentStatusSerializer,
    ReceiptInputSerializer,
    AuditFilterSerializer,
    PurchaseOrderAuditSerializer,
    ApprovalWorkflowSerializer,
    QuotationRequestInputSerializer,
    QuotationRequestSerializer,
    QuotationInputSerializer,
    QuotationSerializer,
    SendEmailSerializer,
    CommunicationFilterSerializer,
    SupplierCommunicationSerializer,
    CommunicationTemplateSerializer,
    DocumentUploadSerializer,
    DocumentFilterSerializer,
    DocumentSerializer,
)
from .services import (
    ProcurementServiceError,
    SupplierNotFoundError,
    PurchaseOrderNotFoundError,
    ApprovalPermissionError,
    QuotationNotFoundError,
    AlreadyConvertedError,
    create_supplier,
    update_supplier,
    deactivate_supplier,
    find_similar_suppliers,
    get_supplier_performance,
    create_purchase_order,
    update_purchase_order,
    change_po_status,
    submit_for_approval,
    approve_purchase_order,
    cancel_purchase_order,
    mark_as_ordered,
    update_payment_status,
    process_po_receipt,
    get_audit_trail,
    create_quotation_request,
    send_quotation_request,
    record_quotation,
    compare_quotations,
    accept_quotation,
    reject_quotation,
    expire_quotations,
    convert_quotation_to_po,
    log_communication,
    send_supplier_email,
    get_communications,
    get_active_templates,
    template_variables,
    upload_document,
    delete_document,
    get_documents,
    open_document,
)

logger = logging.getLogger(__name__)


class ProcurementPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


def _error_response(error):
    """Map a procurement service error to an error response."""
    if isinstance(error, (SupplierNotFoundError, PurchaseOrderNotFoundError, QuotationNotFoundError)):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ApprovalPermissionError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(error, AlreadyConvertedError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    logger.warning("Procurement request rejected: %s", error)
    return Response({'error': str(error)}, status=code)


# =============================================================================
# Suppliers
# =============================================================================

class SupplierViewSet(viewsets.ModelViewSet):
    """
    ViewSet for suppliers.

    destroy: deactivates the supplier
    similar: fuzzy duplicate check by name
    performance: order statistics
    """

    queryset = Supplier.objects.all()
    serializer_class = SupplierSerializer
    permission_classes = [IsAuthenticated, CanManageProcurement]

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != 'list':
            return queryset

        filter_serializer = SupplierFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('search'):
            queryset = queryset.filter(
                Q(supplier_name__icontains=params['search']) |
                Q(supplier_code__icontains=params['search']) |
                Q(contact_person__icontains=params['search'])
            )
        return queryset

    @extend_schema(request=SupplierInputSerializer, responses={201: SupplierSerializer})
    def create(self, request, *args, **kwargs):
        serializer = SupplierInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            supplier = create_supplier(created_by=request.user, **serializer.validated_data)
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(SupplierSerializer(supplier).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=SupplierInputSerializer, responses={200: SupplierSerializer})
    def update(self, request, *args, **kwargs):
        supplier = self.get_object()
        serializer = SupplierInputSerializer(data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)
        try:
            supplier = update_supplier(supplier_id=supplier.id, **serializer.validated_data)
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(SupplierSerializer(supplier).data)

    def destroy(self, request, *args, **kwargs):
        deactivate_supplier(supplier_id=self.get_object().id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def similar(self, request):
        """GET /api/procurement/suppliers/similar/?name=Pharma"""
        name = request.query_params.get('name', '').strip()
        if not name:
            return Response({'error': 'name is required'}, status=status.HTTP_400_BAD_REQUEST)
        matches = find_similar_suppliers(name=name, exclude_id=request.query_params.get('exclude_id'))
        return Response([
            {'id': supplier.id, 'supplier_name': supplier.supplier_name, 'score': score}
            for supplier, score in matches
        ])

    @action(detail=True, methods=['get'])
    def performance(self, request, pk=None):
        """GET /api/procurement/suppliers/{id}/performance/"""
        return Response(get_supplier_performance(supplier_id=self.get_object().id))


# =============================================================================
# Purchase orders
# =============================================================================

class PurchaseOrderViewSet(viewsets.ModelViewSet):
    """
    ViewSet for purchase orders.

    Status actions: submit, approve, cancel, mark_ordered, change_status.
    receive: goods receipt (creates stock movements)
    payment: update payment status
    audit: audit trail of this PO
    """

    queryset = PurchaseOrder.objects.select_related(
        'supplier',
        'requested_by',
        'approved_by',
        'received_by',
    ).prefetch_related('items')
    serializer_class = PurchaseOrderSerializer
    permission_classes = [IsAuthenticated, CanManageProcurement]
    pagination_class = ProcurementPagination
    http_method_names = ['get', 'post', 'put', 'patch', 'head', 'options']

    def get_permissions(self):
        if self.action == 'approve':
            return [IsAuthenticated(), CanApprovePurchaseOrders()]
        return super().get_permissions()

    def get_serializer_class(self):
        if self.action == 'list':
            return PurchaseOrderListSerializer
        return PurchaseOrderSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.action != 'list':
            return queryset

        filter_serializer = PurchaseOrderFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('supplier'):
            queryset = queryset.filter(supplier_id=params['supplier'])
        if params.get('search'):
            queryset = queryset.filter(
                Q(po_number__icontains=params['search']) |
                Q(supplier__supplier_name__icontains=params['search'])
            )
        if 'date_from' in params:
            queryset = queryset.filter(order_date__gte=params['date_from'])
        if 'date_to' in params:
            queryset = queryset.filter(order_date__lte=params['date_to'])
        return queryset

    @extend_schema(request=PurchaseOrderInputSerializer, responses={201: PurchaseOrderSerializer})
    def create(self, request, *args, **kwargs):
        serializer = PurchaseOrderInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            purchase_order = create_purchase_order(requested_by=request.user, **serializer.validated_data)
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=PurchaseOrderInputSerializer, responses={200: PurchaseOrderSerializer})
    def update(self, request, *args, **kwargs):
        purchase_order = self.get_object()
        serializer = PurchaseOrderInputSerializer(data=request.data, partial=kwargs.get('partial', False))
        serializer.is_valid(raise_exception=True)

        fields = dict(serializer.validated_data)
        fields.pop('supplier_id', None)
        try:
            purchase_order = update_purchase_order(
                purchase_order_id=purchase_order.id,
                user=request.user,
                **fields
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(PurchaseOrderSerializer(purchase_order).data)

    def _respond(self, purchase_order):
        purchase_order = self.get_queryset().get(id=purchase_order.id)
        return Response(PurchaseOrderSerializer(purchase_order).data)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        """POST /api/procurement/purchase-orders/{id}/submit/"""
        try:
            purchase_order = submit_for_approval(purchase_order_id=self.get_object().id, user=request.user)
        except ProcurementServiceError as e:
            return _error_response(e)
        return self._respond(purchase_order)

    @extend_schema(request=ReasonSerializer)
    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """POST /api/procurement/purchase-orders/{id}/approve/"""
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            purchase_order = approve_purchase_order(
                purchase_order_id=self.get_object().id,
                user=request.user,
                notes=serializer.validated_data.get('reason', '')
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return self._respond(purchase_order)

    @extend_schema(request=ReasonSerializer)
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        """POST /api/procurement/purchase-orders/{id}/cancel/ {"reason": "..."}"""
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            purchase_order = cancel_purchase_order(
                purchase_order_id=self.get_object().id,
                user=request.user,
                reason=serializer.validated_data.get('reason', '')
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return self._respond(purchase_order)

    @extend_schema(request=MarkOrderedSerializer)
    @action(detail=True, methods=['post'], url_path='mark-ordered')
    def mark_ordered(self, request, pk=None):
        """POST /api/procurement/purchase-orders/{id}/mark-ordered/"""
        serializer = MarkOrderedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            purchase_order = mark_as_ordered(
                purchase_order_id=self.get_object().id,
                user=request.user,
                tracking_number=serializer.validated_data.get('tracking_number', '')
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return self._respond(purchase_order)

    @extend_schema(request=StatusChangeSerializer)
    @action(detail=True, methods=['post'], url_path='status')
    def change_status(self, request, pk=None):
        """POST /api/procurement/purchase-orders/{id}/status/ {"status": "closed"}"""
        serializer = StatusChangeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            purchase_order = change_po_status(
                purchase_order_id=self.get_object().id,
                new_status=serializer.validated_data['status'],
                user=request.user,
                reason=serializer.validated_data.get('reason', '')
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return self._respond(purchase_order)

    @extend_schema(request=ReceiptInputSerializer, responses={200: PurchaseOrderSerializer})
    @action(detail=True, methods=['post'])
    def receive(self, request, pk=None):
        """
        Receive goods.

        POST /api/procurement/purchase-orders/{id}/receive/
        Body: {"items": [{"item_id": "...", "quantity_received": 10,
               "batch_number": "B1", "expiry_date": "2027-01-31"}]}
        """
        serializer = ReceiptInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            purchase_order = process_po_receipt(
                purchase_order_id=self.get_object().id,
                user=request.user,
                **serializer.validated_data
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return self._respond(purchase_order)

    @extend_schema(request=PaymentStatusSerializer)
    @action(detail=True, methods=['post'])
    def payment(self, request, pk=None):
        """POST /api/procurement/purchase-orders/{id}/payment/"""
        serializer = PaymentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            purchase_order = update_payment_status(
                purchase_order_id=self.get_object().id,
                payment_status=serializer.validated_data['payment_status'],
                user=request.user
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return self._respond(purchase_order)

    @action(detail=True, methods=['get'])
    def audit(self, request, pk=None):
        """GET /api/procurement/purchase-orders/{id}/audit/"""
        entries = get_audit_trail(purchase_order_id=self.get_object().id)
        return Response(PurchaseOrderAuditSerializer(entries, many=True).data)


@extend_schema(
    parameters=[AuditFilterSerializer],
    responses={200: PurchaseOrderAuditSerializer(many=True)},
    description="Purchase order audit trail across all orders.",
    tags=['procurement'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated, CanManageProcurement])
def audit_trail(request):
    """GET /api/procurement/audit/?search=PO-2026&status=approved"""
    filter_serializer = AuditFilterSerializer(data=request.query_params)
    filter_serializer.is_valid(raise_exception=True)
    params = filter_serializer.validated_data

    entries = get_audit_trail(
        search=params.get('search'),
        status=params.get('status'),
        date_from=params.get('date_from'),
        date_to=params.get('date_to'),
        purchase_order_id=params.get('purchase_order'),
    )
    paginator = ProcurementPagination()
    page = paginator.paginate_queryset(entries, request)
    return paginator.get_paginated_response(PurchaseOrderAuditSerializer(page, many=True).data)


class ApprovalWorkflowViewSet(viewsets.ModelViewSet):
    """Approval workflows; managed by users who can approve purchase orders."""

    queryset = ApprovalWorkflow.objects.all()
    serializer_class = ApprovalWorkflowSerializer
    permission_classes = [IsAuthenticated, CanApprovePurchaseOrders]


# =============================================================================
# Quotations
# =============================================================================

class QuotationRequestViewSet(mixins.CreateModelMixin,
                              mixins.ListModelMixin,
                              mixins.RetrieveModelMixin,
                              viewsets.GenericViewSet):
    """
    send: mark sent and log the outbound email
    compare: side-by-side quotation prices
    """

    queryset = QuotationRequest.objects.select_related('supplier', 'requested_by').prefetch_related('items')
    serializer_class = QuotationRequestSerializer
    permission_classes = [IsAuthenticated, CanManageProcurement]
    pagination_class = ProcurementPagination

    def get_queryset(self):
        queryset = super().get_queryset()
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @extend_schema(request=QuotationRequestInputSerializer, responses={201: QuotationRequestSerializer})
    def create(self, request, *args, **kwargs):
        serializer = QuotationRequestInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            quotation_request = create_quotation_request(requested_by=request.user, **serializer.validated_data)
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(QuotationRequestSerializer(quotation_request).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def send(self, request, pk=None):
        """POST /api/procurement/quotation-requests/{id}/send/"""
        try:
            quotation_request = send_quotation_request(request_id=self.get_object().id, user=request.user)
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(QuotationRequestSerializer(quotation_request).data)

    @action(detail=True, methods=['get'])
    def compare(self, request, pk=None):
        """GET /api/procurement/quotation-requests/{id}/compare/"""
        return Response(compare_quotations(request_id=self.get_object().id))


class QuotationViewSet(mixins.CreateModelMixin,
                       mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       viewsets.GenericViewSet):
    """
    accept / reject: decide on a quotation
    convert: create a purchase order from the quotation
    expire: mark quotations past valid_until as expired
    """

    queryset = Quotation.objects.select_related('supplier', 'accepted_by').prefetch_related('items')
    serializer_class = QuotationSerializer
    permission_classes = [IsAuthenticated, CanManageProcurement]
    pagination_class = ProcurementPagination

    def get_queryset(self):
        queryset = super().get_queryset()
        request_id = self.request.query_params.get('quotation_request')
        if request_id:
            queryset = queryset.filter(quotation_request_id=request_id)
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset

    @extend_schema(request=QuotationInputSerializer, responses={201: QuotationSerializer})
    def create(self, request, *args, **kwargs):
        serializer = QuotationInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            quotation = record_quotation(**serializer.validated_data)
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(QuotationSerializer(quotation).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def accept(self, request, pk=None):
        """POST /api/procurement/quotations/{id}/accept/"""
        try:
            quotation = accept_quotation(quotation_id=self.get_object().id, user=request.user)
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(QuotationSerializer(quotation).data)

    @extend_schema(request=ReasonSerializer)
    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        """POST /api/procurement/quotations/{id}/reject/"""
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            quotation = reject_quotation(
                quotation_id=self.get_object().id,
                reason=serializer.validated_data.get('reason', '')
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(QuotationSerializer(quotation).data)

    @extend_schema(responses={201: PurchaseOrderSerializer})
    @action(detail=True, methods=['post'])
    def convert(self, request, pk=None):
        """POST /api/procurement/quotations/{id}/convert/"""
        try:
            purchase_order = convert_quotation_to_po(quotation_id=self.get_object().id, user=request.user)
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def expire(self, request):
        """POST /api/procurement/quotations/expire/"""
        return Response({'expired': expire_quotations()})


# =============================================================================
# Communication
# =============================================================================

class SupplierCommunicationViewSet(mixins.CreateModelMixin,
                                   mixins.ListModelMixin,
                                   mixins.RetrieveModelMixin,
                                   viewsets.GenericViewSet):
    """
    create: log a phone call, meeting or received document
    send_email: email a supplier (free text or template)
    """

    queryset = SupplierCommunication.objects.all()
    serializer_class = SupplierCommunicationSerializer
    permission_classes = [IsAuthenticated, CanManageProcurement]
    pagination_class = ProcurementPagination

    def get_queryset(self):
        if self.action != 'list':
            return super().get_queryset()

        filter_serializer = CommunicationFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data
        return get_communications(
            supplier_id=params.get('supplier'),
            purchase_order_id=params.get('purchase_order'),
            quotation_id=params.get('quotation'),
            communication_type=params.get('communication_type'),
        )

    def perform_create(self, serializer):
        communication = log_communication(created_by=self.request.user, **serializer.validated_data)
        serializer.instance = communication

    @extend_schema(request=SendEmailSerializer, responses={201: SupplierCommunicationSerializer})
    @action(detail=False, methods=['post'], url_path='send-email')
    def send_email(self, request):
        """POST /api/procurement/communications/send-email/"""
        serializer = SendEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            supplier = Supplier.objects.get(id=data['supplier_id'])
        except Supplier.DoesNotExist:
            return Response({'error': 'Supplier not found'}, status=status.HTTP_404_NOT_FOUND)

        template = None
        if data.get('template_id'):
            template = CommunicationTemplate.objects.filter(id=data['template_id'], is_active=True).first()
            if template is None:
                return Response({'error': 'Template not found'}, status=status.HTTP_404_NOT_FOUND)

        purchase_order = (
            PurchaseOrder.objects.filter(id=data['purchase_order_id']).first()
            if data.get('purchase_order_id') else None
        )
        quotation = (
            Quotation.objects.filter(id=data['quotation_id']).first()
            if data.get('quotation_id') else None
        )

        try:
            communication = send_supplier_email(
                supplier=supplier,
                subject=data.get('subject', ''),
                content=data.get('content', ''),
                user=request.user,
                purchase_order=purchase_order,
                quotation=quotation,
                template=template,
                variables=data.get('variables'),
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(SupplierCommunicationSerializer(communication).data, status=status.HTTP_201_CREATED)


class CommunicationTemplateViewSet(viewsets.ModelViewSet):
    """Supplier email templates; listing shows active templates only."""

    queryset = CommunicationTemplate.objects.all()
    serializer_class = CommunicationTemplateSerializer
    permission_classes = [IsAuthenticated, CanManageProcurement]

    def get_queryset(self):
        if self.action == 'list':
            return get_active_templates(self.request.query_params.get('template_type'))
        return super().get_queryset()

    def _with_variables(self, serializer):
        data = serializer.validated_data
        subject = data.get('subject_template', getattr(serializer.instance, 'subject_template', ''))
        content = data.get('content_template', getattr(serializer.instance, 'content_template', ''))
        return template_variables(f"{subject}\n{content}")

    def perform_create(self, serializer):
        serializer.save(variables=self._with_variables(serializer))

    def perform_update(self, serializer):
        serializer.save(variables=self._with_variables(serializer))


# =============================================================================
# Documents
# =============================================================================

class DocumentViewSet(mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      mixins.DestroyModelMixin,
                      viewsets.GenericViewSet):
    """
    create: multipart upload (new version when the name repeats)
    destroy: soft delete
    download: stream the stored file
    """

    queryset = Document.objects.filter(is_active=True)
    serializer_class = DocumentSerializer
    permission_classes = [IsAuthenticated, CanManageProcurement]
    parser_classes = [MultiPartParser, FormParser]

    def get_queryset(self):
        if self.action != 'list':
            return super().get_queryset()

        filter_serializer = DocumentFilterSerializer(data=self.request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data
        return get_documents(
            purchase_order_id=params.get('purchase_order'),
            quotation_id=params.get('quotation'),
            supplier_id=params.get('supplier'),
            document_type=params.get('document_type'),
        )

    @extend_schema(request=DocumentUploadSerializer, responses={201: DocumentSerializer})
    def create(self, request, *args, **kwargs):
        serializer = DocumentUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        links = {}
        for field, model in (
            ('purchase_order', PurchaseOrder),
            ('quotation', Quotation),
            ('supplier', Supplier),
        ):
            link_id = data.get(f'{field}_id')
            if link_id:
                links[field] = model.objects.filter(id=link_id).first()
                if links[field] is None:
                    return Response(
                        {'error': f"{field.replace('_', ' ').capitalize()} not found"},
                        status=status.HTTP_404_NOT_FOUND
                    )

        try:
            document = upload_document(
                file=data['file'],
                document_type=data['document_type'],
                document_name=data.get('document_name', ''),
                uploaded_by=request.user,
                **links
            )
        except ProcurementServiceError as e:
            return _error_response(e)
        return Response(DocumentSerializer(document).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance):
        delete_document(document=instance)

    @action(detail=True, methods=['get'])
    def download(self, request, pk=None):
        """GET /api/procurement/documents/{id}/download/"""
        document = self.get_object()
        return FileResponse(
            open_document(document),
            as_attachment=True,
            filename=document.document_name,
            content_type=document.mime_type or 'application/octet-stream'
        )
