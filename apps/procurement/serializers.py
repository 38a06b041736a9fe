from rest_framework import serializers

from apps.accounts.models import StaffRole
from apps.accounts.serializers import UserMinimalSerializer
from .models import (
    Supplier,
    SupplierStatus,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderAudit,
    POStatus,
    PaymentStatus,
    ApprovalWorkflow,
    QuotationRequest,
    QuotationRequestItem,
    RequestPriority,
    Quotation,
    QuotationItem,
    QuotationStatus,
    SupplierCommunication,
    CommunicationTemplate,
    CommunicationType,
    CommunicationTemplateType,
    Document,
    DocumentType,
)


# =============================================================================
# Input Serializers
# =============================================================================

class SupplierInputSerializer(serializers.Serializer):
    supplier_name = serializers.CharField(max_length=200)
    supplier_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    contact_person = serializers.CharField(max_length=200, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    address = serializers.CharField(required=False, allow_blank=True)
    payment_terms = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=SupplierStatus.choices, required=False)


class SupplierFilterSerializer(serializers.Serializer):
    search = serializers.CharField(max_length=100, required=False)
    status = serializers.ChoiceField(choices=SupplierStatus.choices, required=False)


class PurchaseOrderItemInputSerializer(serializers.Serializer):
    medication_id = serializers.UUIDField(required=False, allow_null=True)
    item_name = serializers.CharField(max_length=200, required=False, allow_blank=True)
    quantity_ordered = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('medication_id') and not attrs.get('item_name'):
            raise serializers.ValidationError("Each item needs a medication or an item name")
        return attrs


class PurchaseOrderInputSerializer(serializers.Serializer):
    """Input for creating or editing a purchase order."""

    supplier_id = serializers.UUIDField()
    items = PurchaseOrderItemInputSerializer(many=True)
    order_date = serializers.DateField(required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    shipping_cost = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)
    payment_terms = serializers.CharField(max_length=100, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("A purchase order needs at least one item")
        return value


class PurchaseOrderFilterSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=POStatus.choices, required=False)
    supplier = serializers.UUIDField(required=False)
    search = serializers.CharField(max_length=100, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=POStatus.choices)
    reason = serializers.CharField(required=False, allow_blank=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class MarkOrderedSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True)


class PaymentStatusSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)


class ReceiptItemSerializer(serializers.Serializer):
    item_id = serializers.UUIDField()
    quantity_received = serializers.IntegerField(min_value=1)
    batch_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    unit_cost = serializers.DecimalField(
        max_digits=12, decimal_places=4, min_value=0, required=False, allow_null=True
    )


class ReceiptInputSerializer(serializers.Serializer):
    """Goods received against a purchase order."""

    items = ReceiptItemSerializer(many=True)
    delivery_date = serializers.DateField(required=False)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    shipping_cost = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False, allow_null=True
    )
    notes = serializers.CharField(required=False, allow_blank=True)


class AuditFilterSerializer(serializers.Serializer):
    search = serializers.CharField(max_length=100, required=False)
    status = serializers.ChoiceField(choices=POStatus.choices, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    purchase_order = serializers.UUIDField(required=False)


class QuotationRequestItemInputSerializer(serializers.Serializer):
    medication_id = serializers.UUIDField(required=False, allow_null=True)
    item_description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    requested_quantity = serializers.IntegerField(min_value=1)
    unit_of_measure = serializers.CharField(max_length=30, required=False, allow_blank=True)
    specifications = serializers.CharField(required=False, allow_blank=True)


class QuotationRequestInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    supplier_id = serializers.UUIDField(required=False, allow_null=True)
    required_by_date = serializers.DateField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=RequestPriority.choices, required=False)
    items = QuotationRequestItemInputSerializer(many=True)


class QuotationItemInputSerializer(serializers.Serializer):
    medication_id = serializers.UUIDField(required=False, allow_null=True)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=4, min_value=0)
    unit_of_measure = serializers.CharField(max_length=30, required=False, allow_blank=True)
    brand = serializers.CharField(max_length=100, required=False, allow_blank=True)
    specifications = serializers.CharField(required=False, allow_blank=True)
    delivery_time_days = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    minimum_order_quantity = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class QuotationInputSerializer(serializers.Serializer):
    supplier_id = serializers.UUIDField()
    quotation_number = serializers.CharField(max_length=50)
    quotation_request_id = serializers.UUIDField(required=False, allow_null=True)
    quotation_date = serializers.DateField(required=False)
    valid_until = serializers.DateField(required=False, allow_null=True)
    currency = serializers.CharField(max_length=3, required=False)
    payment_terms = serializers.CharField(max_length=100, required=False, allow_blank=True)
    delivery_terms = serializers.CharField(max_length=255, required=False, allow_blank=True)
    supplier_reference = serializers.CharField(max_length=100, required=False, allow_blank=True)
    comparison_notes = serializers.CharField(required=False, allow_blank=True)
    items = QuotationItemInputSerializer(many=True)


class SendEmailSerializer(serializers.Serializer):
    """Email a supplier, either free text or from a template."""

    supplier_id = serializers.UUIDField()
    subject = serializers.CharField(max_length=255, required=False, allow_blank=True)
    content = serializers.CharField(required=False, allow_blank=True)
    template_id = serializers.UUIDField(required=False, allow_null=True)
    variables = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False)
    purchase_order_id = serializers.UUIDField(required=False, allow_null=True)
    quotation_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs.get('template_id') and not attrs.get('subject'):
            raise serializers.ValidationError("Provide a subject or a template")
        return attrs


class CommunicationFilterSerializer(serializers.Serializer):
    supplier = serializers.UUIDField(required=False)
    purchase_order = serializers.UUIDField(required=False)
    quotation = serializers.UUIDField(required=False)
    communication_type = serializers.ChoiceField(choices=CommunicationType.choices, required=False)


class DocumentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    document_type = serializers.ChoiceField(choices=DocumentType.choices)
    document_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    purchase_order_id = serializers.UUIDField(required=False, allow_null=True)
    quotation_id = serializers.UUIDField(required=False, allow_null=True)
    supplier_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        if not any(attrs.get(k) for k in ('purchase_order_id', 'quotation_id', 'supplier_id')):
            raise serializers.ValidationError(
                "A document must be linked to a purchase order, quotation or supplier"
            )
        return attrs


class DocumentFilterSerializer(serializers.Serializer):
    purchase_order = serializers.UUIDField(required=False)
    quotation = serializers.UUIDField(required=False)
    supplier = serializers.UUIDField(required=False)
    document_type = serializers.ChoiceField(choices=DocumentType.choices, required=False)


# =============================================================================
# Output Serializers
# =============================================================================

class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            'id',
            'supplier_name',
            'supplier_code',
            'contact_person',
            'phone',
            'email',
            'address',
            'payment_terms',
            'notes',
            'status',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    quantity_outstanding = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id',
            'medication',
            'item_name',
            'quantity_ordered',
            'quantity_received',
            'quantity_outstanding',
            'unit_cost',
            'total_cost',
            'notes',
            'batch_number',
            'expiry_date',
            'received_unit_cost',
            'received_date',
        ]
        read_only_fields = fields


class PurchaseOrderSerializer(serializers.ModelSerializer):
    """Full purchase order with items."""

    supplier_name = serializers.CharField(source='supplier.supplier_name', read_only=True)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    requested_by = UserMinimalSerializer(read_only=True)
    approved_by = UserMinimalSerializer(read_only=True)
    received_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id',
            'po_number',
            'supplier',
            'supplier_name',
            'status',
            'payment_status',
            'order_date',
            'expected_delivery_date',
            'delivery_date',
            'subtotal',
            'tax_amount',
            'shipping_cost',
            'total_amount',
            'payment_terms',
            'tracking_number',
            'notes',
            'requested_by',
            'approved_by',
            'approved_at',
            'received_by',
            'received_at',
            'quotation',
            'quotation_request',
            'items',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.supplier_name', read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id',
            'po_number',
            'supplier',
            'supplier_name',
            'status',
            'payment_status',
            'order_date',
            'expected_delivery_date',
            'total_amount',
            'created_at',
        ]
        read_only_fields = fields


class PurchaseOrderAuditSerializer(serializers.ModelSerializer):
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    supplier_name = serializers.CharField(source='purchase_order.supplier.supplier_name', read_only=True)
    changed_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = PurchaseOrderAudit
        fields = [
            'id',
            'purchase_order',
            'po_number',
            'supplier_name',
            'action',
            'previous_status',
            'new_status',
            'changed_by',
            'changed_at',
            'change_reason',
            'metadata',
            'previous_data',
            'new_data',
        ]
        read_only_fields = fields


class ApprovalWorkflowSerializer(serializers.ModelSerializer):
    required_role = serializers.ChoiceField(choices=StaffRole.choices)

    class Meta:
        model = ApprovalWorkflow
        fields = [
            'id',
            'workflow_name',
            'min_order_value',
            'max_order_value',
            'required_role',
            'department',
            'approval_sequence',
            'auto_approve_below_threshold',
            'notification_emails',
            'escalation_hours',
            'is_active',
            'created_at',
        ]
        read_only_fields = ['id', 'created_at']

    def validate(self, attrs):
        low = attrs.get('min_order_value', getattr(self.instance, 'min_order_value', 0))
        high = attrs.get('max_order_value', getattr(self.instance, 'max_order_value', None))
        if high is not None and low is not None and high < low:
            raise serializers.ValidationError("max_order_value must not be below min_order_value")
        return attrs


class QuotationRequestItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuotationRequestItem
        fields = [
            'id',
            'medication',
            'item_description',
            'requested_quantity',
            'unit_of_measure',
            'specifications',
        ]
        read_only_fields = fields


class QuotationRequestSerializer(serializers.ModelSerializer):
    items = QuotationRequestItemSerializer(many=True, read_only=True)
    supplier_name = serializers.CharField(source='supplier.supplier_name', read_only=True, default=None)
    requested_by = UserMinimalSerializer(read_only=True)
    quotation_count = serializers.SerializerMethodField()

    class Meta:
        model = QuotationRequest
        fields = [
            'id',
            'request_number',
            'title',
            'description',
            'supplier',
            'supplier_name',
            'requested_by',
            'request_date',
            'required_by_date',
            'status',
            'priority',
            'items',
            'quotation_count',
            'created_at',
        ]
        read_only_fields = fields

    def get_quotation_count(self, obj):
        return obj.quotations.count()


class QuotationItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = QuotationItem
        fields = [
            'id',
            'medication',
            'description',
            'quantity',
            'unit_price',
            'total_price',
            'unit_of_measure',
            'brand',
            'specifications',
            'delivery_time_days',
            'minimum_order_quantity',
        ]
        read_only_fields = fields


class QuotationSerializer(serializers.ModelSerializer):
    items = QuotationItemSerializer(many=True, read_only=True)
    supplier_name = serializers.CharField(source='supplier.supplier_name', read_only=True)
    accepted_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Quotation
        fields = [
            'id',
            'quotation_number',
            'quotation_request',
            'supplier',
            'supplier_name',
            'quotation_date',
            'valid_until',
            'total_amount',
            'currency',
            'payment_terms',
            'delivery_terms',
            'supplier_reference',
            'comparison_notes',
            'status',
            'accepted_at',
            'accepted_by',
            'rejected_reason',
            'items',
            'created_at',
        ]
        read_only_fields = fields


class SupplierCommunicationSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.supplier_name', read_only=True)
    created_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = SupplierCommunication
        fields = [
            'id',
            'supplier',
            'supplier_name',
            'purchase_order',
            'quotation',
            'communication_type',
            'direction',
            'subject',
            'content',
            'recipient_email',
            'sender_email',
            'status',
            'attachments',
            'metadata',
            'created_by',
            'created_at',
        ]
        read_only_fields = ['id', 'supplier_name', 'created_by', 'created_at']


class CommunicationTemplateSerializer(serializers.ModelSerializer):
    template_type = serializers.ChoiceField(choices=CommunicationTemplateType.choices)

    class Meta:
        model = CommunicationTemplate
        fields = [
            'id',
            'template_name',
            'template_type',
            'subject_template',
            'content_template',
            'variables',
            'is_active',
            'created_at',
        ]
        read_only_fields = ['id', 'created_at']


class DocumentSerializer(serializers.ModelSerializer):
    uploaded_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Document
        fields = [
            'id',
            'purchase_order',
            'quotation',
            'supplier',
            'document_type',
            'document_name',
            'file_path',
            'file_size',
            'mime_type',
            'version',
            'metadata',
            'uploaded_by',
            'created_at',
        ]
        read_only_fields = fields
