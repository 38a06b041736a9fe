import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, StaffRole
from apps.clinic.models import PriceTier
from apps.inventory.models import Medication
from apps.procurement.models import ApprovalWorkflow
from apps.procurement.services import create_supplier, create_purchase_order


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


def _client_for(user):
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email='po_admin@clinic.test',
        password='TestPass123!',
        role=StaffRole.ADMIN,
    )


@pytest.fixture
def doctor(db):
    return User.objects.create_user(
        email='po_doctor@clinic.test',
        password='TestPass123!',
        role=StaffRole.DOCTOR,
    )


@pytest.fixture
def nurse(db):
    return User.objects.create_user(
        email='po_nurse@clinic.test',
        password='TestPass123!',
        role=StaffRole.NURSE,
    )


@pytest.fixture
def receptionist(db):
    return User.objects.create_user(
        email='po_reception@clinic.test',
        password='TestPass123!',
        role=StaffRole.RECEPTIONIST,
    )


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def doctor_client(doctor):
    return _client_for(doctor)


@pytest.fixture
def nurse_client(nurse):
    """Nurses manage procurement but cannot approve orders."""
    return _client_for(nurse)


@pytest.fixture
def receptionist_client(receptionist):
    return _client_for(receptionist)


# =============================================================================
# Catalogue
# =============================================================================

@pytest.fixture
def paracetamol(db):
    PriceTier.objects.get_or_create(tier_name='Standard')
    return Medication.objects.create(
        name='Paracetamol 500mg',
        category='Analgesic',
        cost_price=Decimal('0.10'),
        reorder_level=50,
    )


@pytest.fixture
def amoxicillin(db):
    return Medication.objects.create(
        name='Amoxicillin 250mg',
        category='Antibiotic',
        cost_price=Decimal('0.50'),
        reorder_level=20,
    )


@pytest.fixture
def supplier(db):
    return create_supplier(
        supplier_name='MedSupply Sdn Bhd',
        contact_person='Mr. Lim',
        email='orders@medsupply.test',
        payment_terms='Net 30',
    )


@pytest.fixture
def other_supplier(db):
    return create_supplier(
        supplier_name='PharmaDirect',
        email='sales@pharmadirect.test',
        payment_terms='Net 14',
    )


# =============================================================================
# Approval workflows
# =============================================================================

@pytest.fixture
def small_orders_workflow(db):
    """Orders up to 1000 are approved by doctors, and auto-approved below 1000."""
    return ApprovalWorkflow.objects.create(
        workflow_name='Small orders',
        min_order_value=Decimal('0.00'),
        max_order_value=Decimal('1000.00'),
        required_role=StaffRole.DOCTOR,
        auto_approve_below_threshold=True,
        approval_sequence=1,
    )


@pytest.fixture
def large_orders_workflow(db):
    return ApprovalWorkflow.objects.create(
        workflow_name='Large orders',
        min_order_value=Decimal('1000.01'),
        required_role=StaffRole.ADMIN,
        approval_sequence=2,
    )


# =============================================================================
# Purchase orders
# =============================================================================

@pytest.fixture
def draft_po(supplier, paracetamol, amoxicillin, nurse):
    """Two-line order with no workflow configured: stays a draft. Total 35.00."""
    return create_purchase_order(
        supplier_id=supplier.id,
        items=[
            {'medication_id': paracetamol.id, 'quantity_ordered': 100, 'unit_cost': Decimal('0.10')},
            {'medication_id': amoxicillin.id, 'quantity_ordered': 50, 'unit_cost': Decimal('0.50')},
        ],
        requested_by=nurse,
    )
