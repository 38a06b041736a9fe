"""
Management command to create sample data for trying out the API.

Usage:
    python manage.py create_sample_data [--clear]

This creates:
- 5 staff members (one per role)
- 2 price tiers and an insurance panel
- 2 medical services with tier prices
- 6 medications with tier prices and batched stock
  (one batch expiring soon, one already expired)
- 2 suppliers
- An approval workflow and a purchase order that has been received
- A quotation request with two competing quotations
"""

from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from apps.accounts.models import User, StaffRole, StaffPermission
from apps.clinic.models import Panel, PriceTier, MedicalService, ServicePricing
from apps.clinic.services import create_price_tier, set_service_pricing
from apps.inventory.models import Medication, MovementType, ReorderSuggestion
from apps.inventory.services import create_medication, record_stock_movement
from apps.procurement.models import (
    Supplier,
    PurchaseOrder,
    ApprovalWorkflow,
    QuotationRequest,
    Quotation,
    SupplierCommunication,
    CommunicationTemplate,
)
from apps.procurement.services import (
    create_supplier,
    create_purchase_order,
    mark_as_ordered,
    process_po_receipt,
    create_quotation_request,
    send_quotation_request,
    record_quotation,
)

STAFF = [
    ('admin@clinic.local', 'admin123', StaffRole.ADMIN, 'Aisha', 'Rahman'),
    ('doctor@clinic.local', 'password123', StaffRole.DOCTOR, 'Daniel', 'Lim'),
    ('nurse@clinic.local', 'password123', StaffRole.NURSE, 'Mei', 'Wong'),
    ('reception@clinic.local', 'password123', StaffRole.RECEPTIONIST, 'Ravi', 'Kumar'),
    ('locum@clinic.local', 'password123', StaffRole.LOCUM, 'Siti', 'Nor'),
]

MEDICATIONS = [
    # name, generic, category, uom, cost, standard price, panel price, reorder level
    ('Paracetamol 500mg', 'Paracetamol', 'Analgesic', 'tablet', '0.08', '0.30', '0.25', 200),
    ('Amoxicillin 250mg', 'Amoxicillin', 'Antibiotic', 'capsule', '0.35', '1.20', '1.00', 100),
    ('Loratadine 10mg', 'Loratadine', 'Antihistamine', 'tablet', '0.20', '0.80', '0.70', 50),
    ('Omeprazole 20mg', 'Omeprazole', 'Gastrointestinal', 'capsule', '0.30', '1.00', '0.90', 60),
    ('Salbutamol Inhaler', 'Salbutamol', 'Respiratory', 'inhaler', '9.50', '25.00', '22.00', 5),
    ('Chlorhexidine 0.2% 250ml', 'Chlorhexidine', 'Antiseptic', 'bottle', '4.10', '12.00', '10.00', 10),
]


class Command(BaseCommand):
    help = 'Create sample clinic data for testing the API'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before creating new sample data',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Creating sample data...')

        users = self.create_staff()
        tiers = self.create_pricing()
        self.create_services(tiers)
        medications = self.create_medications(tiers, users['admin'])
        suppliers = self.create_suppliers(users['admin'])
        self.create_purchase_orders(suppliers, medications, users)
        self.create_quotations(suppliers, medications, users['nurse'])
        self.create_templates()

        self.stdout.write(self.style.SUCCESS('Sample data created successfully!'))
        self.stdout.write('')
        self.stdout.write('Staff accounts:')
        for email, password, role, _, _ in STAFF:
            self.stdout.write(f'  {email} / {password} ({role})')

    def clear_data(self):
        """Clear all clinic data from the database."""
        SupplierCommunication.objects.all().delete()
        PurchaseOrder.objects.all().delete()
        Quotation.objects.all().delete()
        QuotationRequest.objects.all().delete()
        ReorderSuggestion.objects.all().delete()
        Medication.objects.all().delete()
        Supplier.objects.all().delete()
        ApprovalWorkflow.objects.all().delete()
        CommunicationTemplate.objects.all().delete()
        ServicePricing.objects.all().delete()
        MedicalService.objects.all().delete()
        PriceTier.objects.all().delete()
        Panel.objects.all().delete()
        StaffPermission.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()

    def create_staff(self):
        """Create one staff member per role."""
        self.stdout.write('  Creating staff...')
        users = {}
        for email, password, role, first_name, last_name in STAFF:
            user, created = User.objects.get_or_create(
                email=email,
                defaults={
                    'role': role,
                    'first_name': first_name,
                    'last_name': last_name,
                    'is_staff': role == StaffRole.ADMIN,
                    'is_superuser': role == StaffRole.ADMIN,
                },
            )
            if created:
                user.set_password(password)
                user.save()
            users[email.split('@')[0]] = user
        return users

    def create_pricing(self):
        self.stdout.write('  Creating price tiers...')
        panel, _ = Panel.objects.get_or_create(
            code='MEDIC-01',
            defaults={'name': 'MediCare Insurance', 'contact_email': 'claims@medicare.local'},
        )
        standard = PriceTier.objects.filter(tier_name='Standard').first() or create_price_tier(
            tier_name='Standard',
            description='Walk-in patients',
            payment_methods=['cash', 'card'],
        )
        insured = PriceTier.objects.filter(tier_name='Panel').first() or create_price_tier(
            tier_name='Panel',
            description='Insurance panel patients',
            tier_type='panel',
            payment_methods=['panel'],
            panel_ids=[panel.id],
        )
        return {'standard': standard, 'panel': insured}

    def create_services(self, tiers):
        self.stdout.write('  Creating medical services...')
        for name, category, price, duration in [
            ('General Consultation', 'Consultation', '35.00', 15),
            ('Wound Dressing', 'Procedure', '25.00', 20),
        ]:
            service, _ = MedicalService.objects.get_or_create(
                name=name,
                defaults={'category': category, 'price': Decimal(price), 'duration_minutes': duration},
            )
            set_service_pricing(
                service=service,
                prices={
                    tiers['standard'].id: Decimal(price),
                    tiers['panel'].id: (Decimal(price) * Decimal('0.9')).quantize(Decimal('0.01')),
                },
            )

    def create_medications(self, tiers, created_by):
        """Create medications with two receipt batches each."""
        self.stdout.write('  Creating medications and stock...')
        today = timezone.localdate()
        medications = {}

        for index, (name, generic, category, uom, cost, price, panel_price, reorder) in enumerate(MEDICATIONS):
            medication = Medication.objects.filter(name=name).first()
            if medication is None:
                medication = create_medication(
                    name=name,
                    generic_name=generic,
                    category=category,
                    unit_of_measure=uom,
                    cost_price=Decimal(cost),
                    reorder_level=reorder,
                    pricing={
                        tiers['standard'].id: Decimal(price),
                        tiers['panel'].id: Decimal(panel_price),
                    },
                )
                prefix = generic[:3].upper()
                record_stock_movement(
                    medication_id=medication.id,
                    movement_type=MovementType.RECEIPT,
                    quantity=reorder * 2,
                    unit_cost=Decimal(cost),
                    batch_number=f'{prefix}-A{index + 1:02d}',
                    expiry_date=today + timedelta(days=20 + index * 60),
                    reference_number='OPENING',
                    reason='Opening stock',
                    created_by=created_by,
                )
                record_stock_movement(
                    medication_id=medication.id,
                    movement_type=MovementType.RECEIPT,
                    quantity=reorder,
                    unit_cost=(Decimal(cost) * Decimal('1.1')).quantize(Decimal('0.01')),
                    batch_number=f'{prefix}-B{index + 1:02d}',
                    expiry_date=today + timedelta(days=365 + index * 30),
                    reference_number='OPENING',
                    reason='Opening stock',
                    created_by=created_by,
                )
                record_stock_movement(
                    medication_id=medication.id,
                    movement_type=MovementType.DISPENSED,
                    quantity=max(1, reorder // 2),
                    batch_number=f'{prefix}-A{index + 1:02d}',
                    expiry_date=today + timedelta(days=20 + index * 60),
                    reason='Dispensed to patients',
                    created_by=created_by,
                )
            medications[generic.lower()] = medication

        # An expired batch left on the shelf
        chlorhexidine = medications['chlorhexidine']
        if not chlorhexidine.stock_movements.filter(batch_number='CHL-EXP').exists():
            record_stock_movement(
                medication_id=chlorhexidine.id,
                movement_type=MovementType.RECEIPT,
                quantity=6,
                unit_cost=Decimal('3.90'),
                batch_number='CHL-EXP',
                expiry_date=today - timedelta(days=10),
                reason='Old stock found during cycle count',
                created_by=created_by,
            )
        return medications

    def create_suppliers(self, created_by):
        self.stdout.write('  Creating suppliers...')
        suppliers = {}
        for key, name, email, terms in [
            ('pharma', 'Sunrise Pharma Sdn Bhd', 'orders@sunrisepharma.local', 'Net 30'),
            ('medline', 'Medline Distributors', 'sales@medline.local', 'Net 45'),
        ]:
            supplier = Supplier.objects.filter(supplier_name=name).first() or create_supplier(
                supplier_name=name,
                email=email,
                payment_terms=terms,
                contact_person='Sales Desk',
                created_by=created_by,
            )
            suppliers[key] = supplier
        return suppliers

    def create_purchase_orders(self, suppliers, medications, users):
        """Create an approval workflow and one received purchase order."""
        self.stdout.write('  Creating purchase orders...')
        ApprovalWorkflow.objects.get_or_create(
            workflow_name='Small orders',
            defaults={
                'min_order_value': Decimal('0.00'),
                'max_order_value': Decimal('1000.00'),
                'required_role': StaffRole.DOCTOR,
                'auto_approve_below_threshold': True,
            },
        )
        ApprovalWorkflow.objects.get_or_create(
            workflow_name='Large orders',
            defaults={
                'min_order_value': Decimal('1000.00'),
                'required_role': StaffRole.ADMIN,
                'approval_sequence': 2,
            },
        )

        if PurchaseOrder.objects.exists():
            return

        today = timezone.localdate()
        purchase_order = create_purchase_order(
            supplier_id=suppliers['pharma'].id,
            items=[
                {'medication_id': medications['paracetamol'].id, 'quantity_ordered': 500, 'unit_cost': '0.07'},
                {'medication_id': medications['amoxicillin'].id, 'quantity_ordered': 200, 'unit_cost': '0.33'},
            ],
            expected_delivery_date=today + timedelta(days=7),
            requested_by=users['nurse'],
        )
        mark_as_ordered(purchase_order_id=purchase_order.id, user=users['admin'])
        process_po_receipt(
            purchase_order_id=purchase_order.id,
            items=[
                {
                    'item_id': item.id,
                    'quantity_received': item.quantity_ordered,
                    'batch_number': f'PO-{item.medication.generic_name[:3].upper()}-01',
                    'expiry_date': today + timedelta(days=540),
                }
                for item in purchase_order.items.select_related('medication')
            ],
            user=users['nurse'],
        )

    def create_quotations(self, suppliers, medications, requested_by):
        """Create a quotation request with two competing quotations."""
        self.stdout.write('  Creating quotations...')
        if QuotationRequest.objects.exists():
            return

        today = timezone.localdate()
        request = create_quotation_request(
            title='Inhaler restock',
            description='Quarterly inhaler order',
            items=[{'medication_id': medications['salbutamol'].id, 'requested_quantity': 40}],
            required_by_date=today + timedelta(days=14),
            requested_by=requested_by,
        )
        send_quotation_request(request_id=request.id, user=requested_by)
        for supplier, number, price, days in [
            (suppliers['pharma'], 'SP-Q-1001', '9.20', 5),
            (suppliers['medline'], 'ML-88412', '8.95', 10),
        ]:
            record_quotation(
                supplier_id=supplier.id,
                quotation_request_id=request.id,
                quotation_number=number,
                valid_until=today + timedelta(days=30),
                payment_terms=supplier.payment_terms,
                items=[{
                    'medication_id': medications['salbutamol'].id,
                    'quantity': 40,
                    'unit_price': price,
                    'delivery_time_days': days,
                }],
            )

    def create_templates(self):
        self.stdout.write('  Creating communication templates...')
        CommunicationTemplate.objects.get_or_create(
            template_name='Purchase order',
            defaults={
                'template_type': 'po_confirmation',
                'subject_template': 'Purchase order {{po_number}}',
                'content_template': (
                    'Dear {{supplier_name}},\n\n'
                    'Please find attached purchase order {{po_number}} '
                    'totalling {{total_amount}}.\n\nRegards'
                ),
                'variables': ['po_number', 'supplier_name', 'total_amount'],
            },
        )
