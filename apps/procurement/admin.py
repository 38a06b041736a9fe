from django.contrib import admin
from django.utils.html import format_html

from .models import (
    Supplier,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderAudit,
    POStatus,
    ApprovalWorkflow,
    QuotationRequest,
    QuotationRequestItem,
    Quotation,
    QuotationItem,
    SupplierCommunication,
    CommunicationTemplate,
    Document,
)

STATUS_COLORS = {
    POStatus.DRAFT: '#8C8C8C',
    POStatus.PENDING_APPROVAL: '#E5A94A',
    POStatus.APPROVED: '#5B7DB1',
    POStatus.ORDERED: '#5B7DB1',
    POStatus.PARTIALLY_RECEIVED: '#E5A94A',
    POStatus.RECEIVED: '#6B8E5E',
    POStatus.CLOSED: '#6B8E5E',
    POStatus.CANCELLED: '#B85C5C',
}


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['supplier_name', 'supplier_code', 'contact_person', 'email', 'status', 'created_at']
    list_filter = ['status']
    search_fields = ['supplier_name', 'supplier_code', 'contact_person', 'email']
    readonly_fields = ['created_at', 'updated_at']


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    fields = ['medication', 'item_name', 'quantity_ordered', 'quantity_received', 'unit_cost', 'total_cost']
    readonly_fields = ['quantity_received', 'total_cost']


class PurchaseOrderAuditInline(admin.TabularInline):
    model = PurchaseOrderAudit
    extra = 0
    fields = ['action', 'previous_status', 'new_status', 'changed_by', 'changed_at', 'change_reason']
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = [
        'po_number',
        'supplier',
        'status_badge',
        'payment_status',
        'order_date',
        'total_amount',
        'requested_by',
    ]
    list_filter = ['status', 'payment_status', 'order_date']
    search_fields = ['po_number', 'supplier__supplier_name', 'tracking_number']
    date_hierarchy = 'order_date'
    readonly_fields = [
        'po_number',
        'subtotal',
        'tax_amount',
        'total_amount',
        'approved_by',
        'approved_at',
        'received_by',
        'received_at',
        'created_at',
        'updated_at',
    ]
    inlines = [PurchaseOrderItemInline, PurchaseOrderAuditInline]

    def status_badge(self, obj):
        """Status as colored badge."""
        return format_html(
            '<span style="background: {}; color: white; padding: 3px 8px; '
            'border-radius: 10px; font-size: 11px;">{}</span>',
            STATUS_COLORS.get(obj.status, '#8C8C8C'),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'


@admin.register(PurchaseOrderAudit)
class PurchaseOrderAuditAdmin(admin.ModelAdmin):
    list_display = ['purchase_order', 'action', 'previous_status', 'new_status', 'changed_by', 'changed_at']
    list_filter = ['action', 'new_status', 'changed_at']
    search_fields = ['purchase_order__po_number', 'change_reason']

    def has_change_permission(self, request, obj=None):
        return False

    def has_add_permission(self, request):
        return False


@admin.register(ApprovalWorkflow)
class ApprovalWorkflowAdmin(admin.ModelAdmin):
    list_display = [
        'workflow_name',
        'min_order_value',
        'max_order_value',
        'required_role',
        'auto_approve_below_threshold',
        'is_active',
    ]
    list_filter = ['required_role', 'is_active']


class QuotationRequestItemInline(admin.TabularInline):
    model = QuotationRequestItem
    extra = 0


@admin.register(QuotationRequest)
class QuotationRequestAdmin(admin.ModelAdmin):
    list_display = ['request_number', 'title', 'supplier', 'status', 'priority', 'request_date']
    list_filter = ['status', 'priority']
    search_fields = ['request_number', 'title']
    inlines = [QuotationRequestItemInline]


class QuotationItemInline(admin.TabularInline):
    model = QuotationItem
    extra = 0


@admin.register(Quotation)
class QuotationAdmin(admin.ModelAdmin):
    list_display = ['quotation_number', 'supplier', 'status', 'quotation_date', 'valid_until', 'total_amount']
    list_filter = ['status', 'quotation_date']
    search_fields = ['quotation_number', 'supplier__supplier_name', 'supplier_reference']
    inlines = [QuotationItemInline]


@admin.register(SupplierCommunication)
class SupplierCommunicationAdmin(admin.ModelAdmin):
    list_display = ['supplier', 'communication_type', 'direction', 'subject', 'status', 'created_at']
    list_filter = ['communication_type', 'direction', 'status']
    search_fields = ['supplier__supplier_name', 'subject', 'recipient_email']


@admin.register(CommunicationTemplate)
class CommunicationTemplateAdmin(admin.ModelAdmin):
    list_display = ['template_name', 'template_type', 'is_active']
    list_filter = ['template_type', 'is_active']


@admin.register(Document)
class DocumentAdmin(admin.ModelAdmin):
    list_display = ['document_name', 'document_type', 'version', 'file_size', 'is_active', 'uploaded_by', 'created_at']
    list_filter = ['document_type', 'is_active']
    search_fields = ['document_name']
    readonly_fields = ['file_path', 'file_size', 'mime_type', 'version', 'created_at']
