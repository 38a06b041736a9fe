import pytest
from datetime import date, timedelta
from decimal import Decimal
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from apps.clinic.services import update_setting
from apps.inventory.models import MovementType
from apps.procurement.models import (
    POStatus,
    PurchaseOrder,
    PurchaseOrderAudit,
    QuotationStatus,
    QuotationRequestStatus,
    CommunicationTemplate,
    CommunicationStatus,
    SupplierCommunication,
)
from apps.procurement.services import (
    generate_po_number,
    create_purchase_order,
    update_purchase_order,
    change_po_status,
    approve_purchase_order,
    cancel_purchase_order,
    mark_as_ordered,
    process_po_receipt,
    get_audit_trail,
    create_supplier,
    find_similar_suppliers,
    get_supplier_performance,
    create_quotation_request,
    send_quotation_request,
    record_quotation,
    compare_quotations,
    accept_quotation,
    reject_quotation,
    expire_quotations,
    convert_quotation_to_po,
    process_template,
    send_supplier_email,
    upload_document,
    InvalidPOStatusTransitionError,
    PurchaseOrderNotEditableError,
    ApprovalPermissionError,
    CancellationReasonRequiredError,
    InvalidReceiptError,
    DuplicateSupplierError,
    InactiveSupplierError,
    QuotationNotAcceptableError,
    AlreadyConvertedError,
    EmailDeliveryError,
    InvalidDocumentError,
    deactivate_supplier,
)


def _order(purchase_order, user=None):
    """Move a draft PO through approval to ordered."""
    change_po_status(purchase_order_id=purchase_order.id, new_status=POStatus.APPROVED, user=user)
    return mark_as_ordered(purchase_order_id=purchase_order.id, user=user)


# =============================================================================
# Purchase orders
# =============================================================================

@pytest.mark.django_db
class TestPurchaseOrderCreation:

    def test_po_numbers_are_sequential_per_day(self, draft_po, supplier, paracetamol):
        today = timezone.localdate().strftime('%Y%m%d')
        assert draft_po.po_number == f'PO-{today}-0001'
        assert generate_po_number() == f'PO-{today}-0002'
        assert generate_po_number(date(2020, 1, 1)) == 'PO-20200101-0001'

    def test_totals_include_tax_and_shipping(self, supplier, paracetamol, admin_user):
        update_setting(category='payment', key='tax_rate', value=6, user=admin_user)

        purchase_order = create_purchase_order(
            supplier_id=supplier.id,
            items=[{'medication_id': paracetamol.id, 'quantity_ordered': 1000, 'unit_cost': '0.10'}],
            shipping_cost=Decimal('5.00'),
        )

        assert purchase_order.subtotal == Decimal('100.00')
        assert purchase_order.tax_amount == Decimal('6.00')
        assert purchase_order.total_amount == Decimal('111.00')

    def test_defaults_to_supplier_payment_terms(self, draft_po):
        assert draft_po.payment_terms == 'Net 30'

    def test_without_workflow_stays_draft(self, draft_po):
        assert draft_po.status == POStatus.DRAFT
        audit = draft_po.audit_entries.get()
        assert audit.action == 'created'
        assert audit.new_data['items'][0]['item_name'] == 'Paracetamol 500mg'

    def test_auto_approved_below_workflow_maximum(self, small_orders_workflow, draft_po):
        draft_po.refresh_from_db()

        assert draft_po.status == POStatus.APPROVED
        actions = list(draft_po.audit_entries.order_by('changed_at').values_list('action', flat=True))
        assert actions == ['created', 'auto_approved']

    def test_at_workflow_maximum_needs_approval(self, small_orders_workflow, supplier, paracetamol):
        purchase_order = create_purchase_order(
            supplier_id=supplier.id,
            items=[{'medication_id': paracetamol.id, 'quantity_ordered': 1000, 'unit_cost': '1.00'}],
        )

        assert purchase_order.total_amount == Decimal('1000.00')
        assert purchase_order.status == POStatus.PENDING_APPROVAL

    def test_large_order_pending_approval(self, small_orders_workflow, large_orders_workflow, supplier, paracetamol):
        purchase_order = create_purchase_order(
            supplier_id=supplier.id,
            items=[{'medication_id': paracetamol.id, 'quantity_ordered': 5000, 'unit_cost': '1.00'}],
        )

        assert purchase_order.status == POStatus.PENDING_APPROVAL

    def test_inactive_supplier_rejected(self, supplier, paracetamol):
        deactivate_supplier(supplier_id=supplier.id)

        with pytest.raises(InactiveSupplierError):
            create_purchase_order(
                supplier_id=supplier.id,
                items=[{'medication_id': paracetamol.id, 'quantity_ordered': 1, 'unit_cost': '1.00'}],
            )

    def test_free_text_item(self, supplier):
        purchase_order = create_purchase_order(
            supplier_id=supplier.id,
            items=[{'item_name': 'Cotton wool 500g', 'quantity_ordered': 4, 'unit_cost': '3.25'}],
        )

        item = purchase_order.items.get()
        assert item.medication is None
        assert item.total_cost == Decimal('13.00')


@pytest.mark.django_db
class TestPurchaseOrderWorkflow:

    def test_update_replaces_items(self, draft_po, paracetamol, nurse):
        purchase_order = update_purchase_order(
            purchase_order_id=draft_po.id,
            items=[{'medication_id': paracetamol.id, 'quantity_ordered': 10, 'unit_cost': '0.20'}],
            notes='Urgent',
            user=nurse,
        )

        assert purchase_order.items.count() == 1
        assert purchase_order.total_amount == Decimal('2.00')
        audit = purchase_order.audit_entries.get(action='updated')
        assert audit.previous_data['total_amount'] == '35.00'
        assert audit.new_data['notes'] == 'Urgent'

    def test_approved_po_is_not_editable(self, draft_po):
        change_po_status(purchase_order_id=draft_po.id, new_status=POStatus.APPROVED)

        with pytest.raises(PurchaseOrderNotEditableError):
            update_purchase_order(purchase_order_id=draft_po.id, notes='Too late')

    def test_invalid_transition(self, draft_po):
        with pytest.raises(InvalidPOStatusTransitionError):
            mark_as_ordered(purchase_order_id=draft_po.id)

        draft_po.refresh_from_db()
        assert draft_po.status == POStatus.DRAFT

    def test_approval_role_must_match_workflow(self, large_orders_workflow, supplier, paracetamol, doctor, admin_user):
        purchase_order = create_purchase_order(
            supplier_id=supplier.id,
            items=[{'medication_id': paracetamol.id, 'quantity_ordered': 5000, 'unit_cost': '1.00'}],
        )

        with pytest.raises(ApprovalPermissionError):
            approve_purchase_order(purchase_order_id=purchase_order.id, user=doctor)

        purchase_order = approve_purchase_order(purchase_order_id=purchase_order.id, user=admin_user, notes='OK')
        assert purchase_order.status == POStatus.APPROVED
        assert purchase_order.approved_by == admin_user
        assert purchase_order.approved_at is not None

    def test_doctor_approves_within_workflow(self, small_orders_workflow, supplier, paracetamol, doctor):
        purchase_order = create_purchase_order(
            supplier_id=supplier.id,
            items=[{'medication_id': paracetamol.id, 'quantity_ordered': 1000, 'unit_cost': '1.00'}],
        )

        purchase_order = approve_purchase_order(purchase_order_id=purchase_order.id, user=doctor)
        assert purchase_order.status == POStatus.APPROVED

    def test_cancel_requires_reason(self, draft_po, nurse):
        with pytest.raises(CancellationReasonRequiredError):
            cancel_purchase_order(purchase_order_id=draft_po.id, user=nurse, reason='  ')

        purchase_order = cancel_purchase_order(purchase_order_id=draft_po.id, user=nurse, reason='Duplicate')
        assert purchase_order.status == POStatus.CANCELLED
        audit = purchase_order.audit_entries.get(action='cancelled')
        assert audit.change_reason == 'Duplicate'
        assert audit.previous_status == POStatus.DRAFT

    def test_cancelled_is_final(self, draft_po):
        cancel_purchase_order(purchase_order_id=draft_po.id, reason='Duplicate')

        with pytest.raises(InvalidPOStatusTransitionError):
            change_po_status(purchase_order_id=draft_po.id, new_status=POStatus.DRAFT)

    def test_audit_trail_search(self, draft_po, supplier):
        cancel_purchase_order(purchase_order_id=draft_po.id, reason='Supplier out of stock')

        assert get_audit_trail(search='out of stock').count() == 1
        assert get_audit_trail(search=draft_po.po_number).count() == 2
        assert get_audit_trail(status=POStatus.CANCELLED).get().action == 'cancelled'


# =============================================================================
# Receiving
# =============================================================================

@pytest.mark.django_db
class TestReceiving:

    @pytest.fixture
    def ordered_po(self, draft_po, nurse):
        return _order(draft_po, user=nurse)

    def _items(self, purchase_order):
        return {item.item_name: item for item in purchase_order.items.all()}

    def test_partial_then_full_receipt(self, ordered_po, paracetamol, amoxicillin, nurse):
        items = self._items(ordered_po)
        expiry = timezone.localdate() + timedelta(days=400)

        purchase_order = process_po_receipt(
            purchase_order_id=ordered_po.id,
            items=[{
                'item_id': items['Paracetamol 500mg'].id,
                'quantity_received': 40,
                'batch_number': 'PCM-1',
                'expiry_date': expiry,
            }],
            user=nurse,
        )

        assert purchase_order.status == POStatus.PARTIALLY_RECEIVED
        paracetamol.refresh_from_db()
        assert paracetamol.stock_level == 40
        movement = paracetamol.stock_movements.get()
        assert movement.movement_type == MovementType.RECEIPT
        assert movement.reference_number == ordered_po.po_number
        assert movement.purchase_order_id == ordered_po.id
        assert movement.batch_number == 'PCM-1'

        purchase_order = process_po_receipt(
            purchase_order_id=ordered_po.id,
            items=[
                {'item_id': items['Paracetamol 500mg'].id, 'quantity_received': 60},
                {'item_id': items['Amoxicillin 250mg'].id, 'quantity_received': 50, 'unit_cost': '0.45'},
            ],
            user=nurse,
        )

        assert purchase_order.status == POStatus.RECEIVED
        assert purchase_order.received_by == nurse
        amoxicillin.refresh_from_db()
        assert amoxicillin.stock_level == 50
        assert amoxicillin.average_cost == Decimal('0.4500')

    def test_over_receipt_rolls_back_everything(self, ordered_po, paracetamol):
        items = self._items(ordered_po)

        with pytest.raises(InvalidReceiptError):
            process_po_receipt(
                purchase_order_id=ordered_po.id,
                items=[
                    {'item_id': items['Paracetamol 500mg'].id, 'quantity_received': 100},
                    {'item_id': items['Amoxicillin 250mg'].id, 'quantity_received': 51},
                ],
            )

        paracetamol.refresh_from_db()
        assert paracetamol.stock_level == 0
        ordered_po.refresh_from_db()
        assert ordered_po.status == POStatus.ORDERED

    def test_only_ordered_pos_can_be_received(self, draft_po):
        item = draft_po.items.first()

        with pytest.raises(InvalidPOStatusTransitionError):
            process_po_receipt(
                purchase_order_id=draft_po.id,
                items=[{'item_id': item.id, 'quantity_received': 1}],
            )

    def test_unknown_item(self, ordered_po, other_supplier):
        with pytest.raises(InvalidReceiptError):
            process_po_receipt(
                purchase_order_id=ordered_po.id,
                items=[{'item_id': other_supplier.id, 'quantity_received': 1}],
            )

    def test_receipt_audit_lists_lines(self, ordered_po):
        item = ordered_po.items.first()
        process_po_receipt(
            purchase_order_id=ordered_po.id,
            items=[{'item_id': item.id, 'quantity_received': 5}],
            notes='Box damaged',
        )

        audit = PurchaseOrderAudit.objects.get(purchase_order=ordered_po, action='received')
        assert audit.change_reason == 'Box damaged'
        assert audit.metadata['received_items'][0]['quantity_received'] == 5

    def test_supplier_performance(self, ordered_po, supplier):
        items = self._items(ordered_po)
        PurchaseOrder.objects.filter(id=ordered_po.id).update(
            order_date=timezone.localdate() - timedelta(days=4),
            expected_delivery_date=timezone.localdate(),
        )
        process_po_receipt(
            purchase_order_id=ordered_po.id,
            items=[
                {'item_id': items['Paracetamol 500mg'].id, 'quantity_received': 100},
                {'item_id': items['Amoxicillin 250mg'].id, 'quantity_received': 50},
            ],
        )

        performance = get_supplier_performance(supplier_id=supplier.id)
        assert performance['order_count'] == 1
        assert performance['total_spend'] == Decimal('35.00')
        assert performance['on_time_delivery_rate'] == 100.0
        assert performance['average_lead_days'] == 4.0


# =============================================================================
# Suppliers
# =============================================================================

@pytest.mark.django_db
class TestSuppliers:

    def test_codes_are_generated(self, supplier, other_supplier):
        assert supplier.supplier_code == 'SUP-0001'
        assert other_supplier.supplier_code == 'SUP-0002'

    def test_duplicate_code(self, supplier):
        with pytest.raises(DuplicateSupplierError):
            create_supplier(supplier_name='Another', supplier_code='sup-0001')

    def test_similar_suppliers(self, supplier, other_supplier):
        matches = find_similar_suppliers(name='Medsupply Sdn. Bhd.')

        assert [s.id for s, _ in matches] == [supplier.id]


# =============================================================================
# Quotations
# =============================================================================

@pytest.mark.django_db
class TestQuotations:

    @pytest.fixture
    def quotation_request(self, supplier, paracetamol, nurse):
        return create_quotation_request(
            title='Paracetamol restock',
            supplier_id=supplier.id,
            items=[{'medication_id': paracetamol.id, 'requested_quantity': 500}],
            requested_by=nurse,
        )

    @pytest.fixture
    def quotes(self, quotation_request, supplier, other_supplier, paracetamol):
        cheap = record_quotation(
            supplier_id=supplier.id,
            quotation_request_id=quotation_request.id,
            quotation_number='MS-881',
            payment_terms='Net 30',
            items=[{
                'medication_id': paracetamol.id,
                'quantity': 500,
                'unit_price': '0.08',
                'delivery_time_days': 3,
            }],
        )
        dear = record_quotation(
            supplier_id=other_supplier.id,
            quotation_request_id=quotation_request.id,
            quotation_number='PD-12',
            items=[{
                'medication_id': paracetamol.id,
                'quantity': 500,
                'unit_price': '0.09',
                'delivery_time_days': 1,
            }],
        )
        return cheap, dear

    def test_request_number(self, quotation_request):
        today = timezone.localdate().strftime('%Y%m%d')
        assert quotation_request.request_number == f'QR-{today}-0001'
        assert quotation_request.items.get().item_description == 'Paracetamol 500mg'

    def test_send_logs_email(self, quotation_request, nurse):
        request = send_quotation_request(request_id=quotation_request.id, user=nurse)

        assert request.status == QuotationRequestStatus.SENT
        communication = SupplierCommunication.objects.get()
        assert communication.subject.startswith(f'Request for quotation {request.request_number}')
        assert '500' in communication.content

    def test_recording_marks_request_received(self, quotes, quotation_request):
        cheap, _ = quotes

        quotation_request.refresh_from_db()
        assert quotation_request.status == QuotationRequestStatus.RECEIVED
        assert cheap.total_amount == Decimal('40.00')

    def test_compare(self, quotes, quotation_request):
        comparison = compare_quotations(request_id=quotation_request.id)

        assert comparison['quotation_count'] == 2
        assert comparison['items'][0]['best_price'] == Decimal('0.08')
        assert comparison['lowest_total']['supplier_name'] == 'MedSupply Sdn Bhd'

    def test_accept_rejects_competitors(self, quotes, nurse):
        cheap, dear = quotes

        accept_quotation(quotation_id=cheap.id, user=nurse)

        dear.refresh_from_db()
        assert dear.status == QuotationStatus.REJECTED
        assert dear.rejected_reason == 'Another quotation was selected'

    def test_cannot_accept_past_validity(self, quotes):
        cheap, _ = quotes
        cheap.valid_until = timezone.localdate() - timedelta(days=1)
        cheap.save()

        with pytest.raises(QuotationNotAcceptableError):
            accept_quotation(quotation_id=cheap.id)

    def test_expire(self, quotes):
        cheap, dear = quotes
        cheap.valid_until = timezone.localdate() - timedelta(days=1)
        cheap.save()

        assert expire_quotations() == 1
        cheap.refresh_from_db()
        assert cheap.status == QuotationStatus.EXPIRED

    def test_convert_to_po(self, quotes, quotation_request, nurse):
        cheap, dear = quotes

        purchase_order = convert_quotation_to_po(quotation_id=cheap.id, user=nurse)

        cheap.refresh_from_db()
        assert cheap.status == QuotationStatus.ACCEPTED
        assert purchase_order.quotation == cheap
        assert purchase_order.quotation_request == quotation_request
        assert purchase_order.payment_terms == 'Net 30'
        assert purchase_order.expected_delivery_date == timezone.localdate() + timedelta(days=3)
        assert purchase_order.total_amount == Decimal('40.00')
        assert purchase_order.audit_entries.get(action='created').change_reason == 'Converted from quotation MS-881'

    def test_convert_twice(self, quotes):
        cheap, _ = quotes
        convert_quotation_to_po(quotation_id=cheap.id)

        with pytest.raises(AlreadyConvertedError):
            convert_quotation_to_po(quotation_id=cheap.id)

    def test_converted_quotation_cannot_be_rejected(self, quotes):
        cheap, _ = quotes
        convert_quotation_to_po(quotation_id=cheap.id)

        with pytest.raises(AlreadyConvertedError):
            reject_quotation(quotation_id=cheap.id, reason='Changed mind')


# =============================================================================
# Communication and documents
# =============================================================================

def test_process_template_keeps_unknown_placeholders():
    text = 'Dear {{ supplier_name }}, re {{po_number}} and {{unknown}}'

    assert process_template(text, {'supplier_name': 'MedSupply', 'po_number': 'PO-1'}) == (
        'Dear MedSupply, re PO-1 and {{unknown}}'
    )


@pytest.mark.django_db
class TestSupplierEmail:

    def test_send_from_template(self, supplier, draft_po, nurse, mailoutbox):
        template = CommunicationTemplate.objects.create(
            template_name='PO confirmation',
            template_type='po_confirmation',
            subject_template='Order {{po_number}}',
            content_template='Dear {{contact_person}}, please confirm {{po_number}}.',
        )

        communication = send_supplier_email(
            supplier=supplier,
            template=template,
            purchase_order=draft_po,
            user=nurse,
        )

        assert communication.status == CommunicationStatus.SENT
        assert len(mailoutbox) == 1
        assert mailoutbox[0].subject == f'Order {draft_po.po_number}'
        assert mailoutbox[0].to == ['orders@medsupply.test']
        assert 'Dear Mr. Lim' in mailoutbox[0].body

    def test_supplier_without_email(self, db):
        supplier = create_supplier(supplier_name='No Mail Pharma')

        with pytest.raises(EmailDeliveryError):
            send_supplier_email(supplier=supplier, subject='Hello')


@pytest.mark.django_db
class TestDocuments:

    @pytest.fixture(autouse=True)
    def media_root(self, settings, tmp_path):
        settings.MEDIA_ROOT = tmp_path

    def test_upload_versions(self, draft_po, nurse):
        first = upload_document(
            file=SimpleUploadedFile('invoice.pdf', b'%PDF-1.4 one', content_type='application/pdf'),
            document_type='invoice',
            purchase_order=draft_po,
            uploaded_by=nurse,
        )
        second = upload_document(
            file=SimpleUploadedFile('invoice.pdf', b'%PDF-1.4 two', content_type='application/pdf'),
            document_type='invoice',
            purchase_order=draft_po,
            uploaded_by=nurse,
        )

        assert first.version == 1
        assert second.version == 2
        assert second.file_path.startswith('documents/invoice/')
        assert second.mime_type == 'application/pdf'

    def test_document_must_be_linked(self):
        with pytest.raises(InvalidDocumentError):
            upload_document(
                file=SimpleUploadedFile('note.txt', b'hello'),
                document_type='other',
            )
