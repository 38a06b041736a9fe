import pytest
from datetime import timedelta
from decimal import Decimal
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, StaffRole
from apps.clinic.models import PriceTier
from apps.inventory.models import Medication, MovementType
from apps.inventory.services import record_stock_movement
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


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email='reports_admin@clinic.test',
        password='TestPass123!',
        role=StaffRole.ADMIN,
    )


@pytest.fixture
def nurse(db):
    return User.objects.create_user(
        email='reports_nurse@clinic.test',
        password='TestPass123!',
        role=StaffRole.NURSE,
    )


@pytest.fixture
def receptionist(db):
    """Receptionists have no report access."""
    return User.objects.create_user(
        email='reports_reception@clinic.test',
        password='TestPass123!',
        role=StaffRole.RECEPTIONIST,
    )


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def nurse_client(nurse):
    return _client_for(nurse)


@pytest.fixture
def receptionist_client(receptionist):
    return _client_for(receptionist)


# =============================================================================
# Inventory
# =============================================================================

@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def price_tier(db):
    return PriceTier.objects.create(tier_name='Standard', payment_methods=['cash'])


@pytest.fixture
def paracetamol(db, price_tier):
    return Medication.objects.create(
        name='Paracetamol 500mg',
        category='Analgesic',
        cost_price=Decimal('0.10'),
        reorder_level=50,
    )


@pytest.fixture
def amoxicillin(db, price_tier):
    """Never stocked."""
    return Medication.objects.create(
        name='Amoxicillin 250mg',
        category='Antibiotic',
        cost_price=Decimal('0.50'),
        reorder_level=20,
    )


@pytest.fixture
def dispensed_paracetamol(paracetamol, amoxicillin, today):
    """
    Paracetamol: 100 received in batch PCM-1, 40 dispensed.
    Stock 60 at 0.10, stock value 6.00.
    """
    expiry = today + timedelta(days=120)
    record_stock_movement(
        medication_id=paracetamol.id,
        movement_type=MovementType.RECEIPT,
        quantity=100,
        unit_cost=Decimal('0.10'),
        batch_number='PCM-1',
        expiry_date=expiry,
    )
    record_stock_movement(
        medication_id=paracetamol.id,
        movement_type=MovementType.DISPENSED,
        quantity=40,
        batch_number='PCM-1',
        expiry_date=expiry,
    )
    paracetamol.refresh_from_db()
    return paracetamol


# =============================================================================
# Procurement
# =============================================================================

@pytest.fixture
def supplier(db):
    return create_supplier(supplier_name='MedSupply Sdn Bhd', email='orders@medsupply.test')


@pytest.fixture
def other_supplier(db):
    return create_supplier(supplier_name='PharmaDirect', email='sales@pharmadirect.test')


@pytest.fixture
def purchase_orders(supplier, other_supplier, paracetamol):
    """
    Three orders dated today:
    MedSupply 20.00 and 10.00, PharmaDirect 5.00.
    """
    def order(vendor, quantity):
        return create_purchase_order(
            supplier_id=vendor.id,
            items=[{'medication_id': paracetamol.id, 'quantity_ordered': quantity, 'unit_cost': Decimal('0.10')}],
        )

    return [order(supplier, 200), order(supplier, 100), order(other_supplier, 50)]
