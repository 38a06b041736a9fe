from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


# =============================================================================
# Suppliers
# =============================================================================

class SupplierStatus(models.TextChoices):
    ACTIVE = 'active', 'Active'
    INACTIVE = 'inactive', 'Inactive'


class Supplier(models.Model):
    """Vendor that medications are purchased from."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    supplier_name = models.CharField(max_length=200)
    supplier_code = models.CharField(max_length=20, unique=True)
    contact_person = models.CharField(max_length=200, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    email = models.EmailField(blank=True)
    address = models.TextField(blank=True)
    payment_terms = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=10,
        choices=SupplierStatus.choices,
        default=SupplierStatus.ACTIVE
    )

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'suppliers'
        indexes = [
            models.Index(fields=['supplier_name'], name='suppliers_name_idx'),
            models.Index(fields=['status'], name='suppliers_status_idx'),
        ]
        ordering = ['supplier_name']

    def __str__(self):
        return f"{self.supplier_name} ({self.supplier_code})"

    @property
    def is_active(self):
        return self.status == SupplierStatus.ACTIVE


# =============================================================================
# Purchase orders
# =============================================================================

class POStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    QUOTATION_REQUESTED = 'quotation_requested', 'Quotation requested'
    QUOTATION_RECEIVED = 'quotation_received', 'Quotation received'
    PENDING_APPROVAL = 'pending_approval', 'Pending approval'
    APPROVED = 'approved', 'Approved'
    ORDERED = 'ordered', 'Ordered'
    PARTIALLY_RECEIVED = 'partially_received', 'Partially received'
    RECEIVED = 'received', 'Received'
    CLOSED = 'closed', 'Closed'
    CANCELLED = 'cancelled', 'Cancelled'


class PaymentStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PARTIAL = 'partial', 'Partial'
    PAID = 'paid', 'Paid'


class PurchaseOrder(models.Model):
    """
    Order placed with a supplier.

    Totals are derived from the items: subtotal is the sum of item totals,
    tax follows the clinic tax rate and total adds tax and shipping.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    po_number = models.CharField(max_length=30, unique=True)
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name='purchase_orders'
    )
    status = models.CharField(
        max_length=20,
        choices=POStatus.choices,
        default=POStatus.DRAFT,
        db_index=True
    )
    payment_status = models.CharField(
        max_length=10,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING
    )

    order_date = models.DateField()
    expected_delivery_date = models.DateField(null=True, blank=True)
    delivery_date = models.DateField(null=True, blank=True)

    # Totals
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shipping_cost = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    payment_terms = models.CharField(max_length=100, blank=True)
    tracking_number = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    # People
    requested_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders_requested'
    )
    approved_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders_approved'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    received_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders_received'
    )
    received_at = models.DateTimeField(null=True, blank=True)

    # Origin
    quotation = models.ForeignKey(
        'Quotation',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders'
    )
    quotation_request = models.ForeignKey(
        'QuotationRequest',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_orders'
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'purchase_orders'
        indexes = [
            models.Index(fields=['supplier', 'status'], name='purchase_or_supp_status_idx'),
            models.Index(fields=['order_date'], name='purchase_or_order_date_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.po_number} ({self.supplier.supplier_name})"


class PurchaseOrderItem(models.Model):
    """Line of a purchase order, with what was actually received."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='items'
    )
    medication = models.ForeignKey(
        'inventory.Medication',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='purchase_order_items'
    )
    item_name = models.CharField(max_length=200)
    quantity_ordered = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    quantity_received = models.PositiveIntegerField(default=0)
    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    total_cost = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    notes = models.TextField(blank=True)

    # Receipt
    batch_number = models.CharField(max_length=100, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    received_unit_cost = models.DecimalField(max_digits=12, decimal_places=4, null=True, blank=True)
    received_date = models.DateField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'purchase_order_items'
        ordering = ['created_at']

    def __str__(self):
        return f"{self.quantity_ordered} x {self.item_name}"

    @property
    def quantity_outstanding(self):
        return max(0, self.quantity_ordered - self.quantity_received)

    @property
    def is_fully_received(self):
        return self.quantity_received >= self.quantity_ordered


class PurchaseOrderAudit(models.Model):
    """Append-only history of purchase order changes."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        related_name='audit_entries'
    )
    action = models.CharField(max_length=30)
    previous_status = models.CharField(max_length=20, blank=True)
    new_status = models.CharField(max_length=20, blank=True)
    changed_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    changed_at = models.DateTimeField(auto_now_add=True, db_index=True)
    change_reason = models.TextField(blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    previous_data = models.JSONField(null=True, blank=True)
    new_data = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = 'purchase_order_audit'
        ordering = ['-changed_at']

    def __str__(self):
        return f"{self.purchase_order.po_number}: {self.action}"


class ApprovalWorkflow(models.Model):
    """Approval rule for purchase orders within an order value range."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    workflow_name = models.CharField(max_length=100)
    min_order_value = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    max_order_value = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    required_role = models.CharField(max_length=20)
    department = models.CharField(max_length=100, blank=True)
    approval_sequence = models.PositiveIntegerField(default=1)
    auto_approve_below_threshold = models.BooleanField(default=False)
    notification_emails = models.JSONField(default=list, blank=True)
    escalation_hours = models.PositiveIntegerField(default=24)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'po_approval_workflows'
        ordering = ['approval_sequence', 'min_order_value']

    def __str__(self):
        upper = self.max_order_value if self.max_order_value is not None else '...'
        return f"{self.workflow_name} ({self.min_order_value} - {upper})"

    def covers(self, amount):
        if amount < self.min_order_value:
            return False
        return self.max_order_value is None or amount <= self.max_order_value


# =============================================================================
# Quotations
# =============================================================================

class QuotationRequestStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SENT = 'sent', 'Sent'
    RECEIVED = 'received', 'Received'
    EXPIRED = 'expired', 'Expired'
    CANCELLED = 'cancelled', 'Cancelled'


class RequestPriority(models.TextChoices):
    LOW = 'low', 'Low'
    NORMAL = 'normal', 'Normal'
    HIGH = 'high', 'High'
    URGENT = 'urgent', 'Urgent'


class QuotationRequest(models.Model):
    """Request for quotation sent to one or more suppliers."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    request_number = models.CharField(max_length=30, unique=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='quotation_requests'
    )
    requested_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='quotation_requests'
    )
    request_date = models.DateField()
    required_by_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=10,
        choices=QuotationRequestStatus.choices,
        default=QuotationRequestStatus.PENDING
    )
    priority = models.CharField(
        max_length=10,
        choices=RequestPriority.choices,
        default=RequestPriority.NORMAL
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'quotation_requests'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.request_number}: {self.title}"


class QuotationRequestItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quotation_request = models.ForeignKey(
        QuotationRequest,
        on_delete=models.CASCADE,
        related_name='items'
    )
    medication = models.ForeignKey(
        'inventory.Medication',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    item_description = models.CharField(max_length=255)
    requested_quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_of_measure = models.CharField(max_length=30, blank=True)
    specifications = models.TextField(blank=True)

    class Meta:
        db_table = 'quotation_request_items'

    def __str__(self):
        return f"{self.requested_quantity} x {self.item_description}"


class QuotationStatus(models.TextChoices):
    RECEIVED = 'received', 'Received'
    UNDER_REVIEW = 'under_review', 'Under review'
    ACCEPTED = 'accepted', 'Accepted'
    REJECTED = 'rejected', 'Rejected'
    EXPIRED = 'expired', 'Expired'


class Quotation(models.Model):
    """Supplier's priced answer to a quotation request."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quotation_number = models.CharField(max_length=50)
    quotation_request = models.ForeignKey(
        QuotationRequest,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='quotations'
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.PROTECT,
        related_name='quotations'
    )
    quotation_date = models.DateField()
    valid_until = models.DateField(null=True, blank=True)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    currency = models.CharField(max_length=3, default='MYR')
    payment_terms = models.CharField(max_length=100, blank=True)
    delivery_terms = models.CharField(max_length=255, blank=True)
    supplier_reference = models.CharField(max_length=100, blank=True)
    comparison_notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=15,
        choices=QuotationStatus.choices,
        default=QuotationStatus.RECEIVED
    )
    accepted_at = models.DateTimeField(null=True, blank=True)
    accepted_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    rejected_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'quotations'
        ordering = ['-quotation_date', '-created_at']

    def __str__(self):
        return f"{self.quotation_number} ({self.supplier.supplier_name})"


class QuotationItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    quotation = models.ForeignKey(
        Quotation,
        on_delete=models.CASCADE,
        related_name='items'
    )
    medication = models.ForeignKey(
        'inventory.Medication',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    description = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    total_price = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    unit_of_measure = models.CharField(max_length=30, blank=True)
    brand = models.CharField(max_length=100, blank=True)
    specifications = models.TextField(blank=True)
    delivery_time_days = models.PositiveIntegerField(null=True, blank=True)
    minimum_order_quantity = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        db_table = 'quotation_items'

    def __str__(self):
        return f"{self.quantity} x {self.description} @ {self.unit_price}"


# =============================================================================
# Supplier communication
# =============================================================================

class CommunicationType(models.TextChoices):
    EMAIL = 'email', 'Email'
    PHONE = 'phone', 'Phone'
    MEETING = 'meeting', 'Meeting'
    DOCUMENT_SENT = 'document_sent', 'Document sent'
    DOCUMENT_RECEIVED = 'document_received', 'Document received'


class CommunicationDirection(models.TextChoices):
    INBOUND = 'inbound', 'Inbound'
    OUTBOUND = 'outbound', 'Outbound'


class CommunicationStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    SENT = 'sent', 'Sent'
    DELIVERED = 'delivered', 'Delivered'
    FAILED = 'failed', 'Failed'
    READ = 'read', 'Read'


class SupplierCommunication(models.Model):
    """Logged contact with a supplier."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.CASCADE,
        related_name='communications'
    )
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='communications'
    )
    quotation = models.ForeignKey(
        Quotation,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='communications'
    )
    communication_type = models.CharField(max_length=20, choices=CommunicationType.choices)
    direction = models.CharField(max_length=10, choices=CommunicationDirection.choices)
    subject = models.CharField(max_length=255, blank=True)
    content = models.TextField(blank=True)
    recipient_email = models.EmailField(blank=True)
    sender_email = models.EmailField(blank=True)
    status = models.CharField(
        max_length=10,
        choices=CommunicationStatus.choices,
        default=CommunicationStatus.DRAFT
    )
    attachments = models.JSONField(default=list, blank=True)
    metadata = models.JSONField(default=dict, blank=True)

    created_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'supplier_communications'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.communication_type} {self.direction}: {self.subject}"


class CommunicationTemplateType(models.TextChoices):
    QUOTATION_REQUEST = 'quotation_request', 'Quotation request'
    PO_CONFIRMATION = 'po_confirmation', 'PO confirmation'
    DELIVERY_INQUIRY = 'delivery_inquiry', 'Delivery inquiry'
    PAYMENT_REMINDER = 'payment_reminder', 'Payment reminder'
    GENERAL = 'general', 'General'


class CommunicationTemplate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    template_name = models.CharField(max_length=100)
    template_type = models.CharField(max_length=20, choices=CommunicationTemplateType.choices)
    subject_template = models.CharField(max_length=255)
    content_template = models.TextField()
    variables = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'communication_templates'
        ordering = ['template_name']

    def __str__(self):
        return self.template_name


# =============================================================================
# Documents
# =============================================================================

class DocumentType(models.TextChoices):
    QUOTATION = 'quotation', 'Quotation'
    PURCHASE_ORDER = 'purchase_order', 'Purchase order'
    INVOICE = 'invoice', 'Invoice'
    DELIVERY_NOTE = 'delivery_note', 'Delivery note'
    SUPPLIER_CORRESPONDENCE = 'supplier_correspondence', 'Supplier correspondence'
    CONTRACT = 'contract', 'Contract'
    OTHER = 'other', 'Other'


class Document(models.Model):
    """Stored procurement file linked to a PO, quotation or supplier."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    purchase_order = models.ForeignKey(
        PurchaseOrder,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='documents'
    )
    quotation = models.ForeignKey(
        Quotation,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='documents'
    )
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='documents'
    )
    document_type = models.CharField(max_length=30, choices=DocumentType.choices)
    document_name = models.CharField(max_length=255)
    file_path = models.CharField(max_length=500)
    file_size = models.PositiveIntegerField(default=0)
    mime_type = models.CharField(max_length=100, blank=True)
    version = models.PositiveIntegerField(default=1)
    is_active = models.BooleanField(default=True)
    metadata = models.JSONField(default=dict, blank=True)

    uploaded_by = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'documents'
        indexes = [
            models.Index(fields=['document_type', 'is_active'], name='documents_type_active_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.document_name} v{self.version}"
