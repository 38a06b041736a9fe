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
        email='stock_admin@clinic.test',
        password='TestPass123!',
        role=StaffRole.ADMIN,
    )


@pytest.fixture
def doctor(db):
    return User.objects.create_user(
        email='stock_doctor@clinic.test',
        password='TestPass123!',
        role=StaffRole.DOCTOR,
    )


@pytest.fixture
def nurse(db):
    return User.objects.create_user(
        email='stock_nurse@clinic.test',
        password='TestPass123!',
        role=StaffRole.NURSE,
    )


@pytest.fixture
def receptionist(db):
    return User.objects.create_user(
        email='stock_reception@clinic.test',
        password='TestPass123!',
        role=StaffRole.RECEPTIONIST,
    )


@pytest.fixture
def admin_client(admin_user):
    return _client_for(admin_user)


@pytest.fixture
def doctor_client(doctor):
    """Return API client authenticated as a doctor (can adjust stock)."""
    return _client_for(doctor)


@pytest.fixture
def nurse_client(nurse):
    """Return API client authenticated as a nurse (procurement, no adjustments)."""
    return _client_for(nurse)


@pytest.fixture
def receptionist_client(receptionist):
    return _client_for(receptionist)


# =============================================================================
# Stock
# =============================================================================

@pytest.fixture
def today():
    return timezone.localdate()


@pytest.fixture
def price_tier(db):
    """Medications cannot be created before a price tier exists."""
    return PriceTier.objects.create(tier_name='Standard', payment_methods=['cash'])


@pytest.fixture
def paracetamol(db, price_tier):
    return Medication.objects.create(
        name='Paracetamol 500mg',
        generic_name='Paracetamol',
        category='Analgesic',
        unit_of_measure='tablet',
        cost_price=Decimal('0.10'),
        reorder_level=50,
    )


@pytest.fixture
def amoxicillin(db, price_tier):
    return Medication.objects.create(
        name='Amoxicillin 250mg',
        category='Antibiotic',
        unit_of_measure='capsule',
        cost_price=Decimal('0.50'),
        reorder_level=20,
    )


@pytest.fixture
def stocked_paracetamol(paracetamol, today):
    """Paracetamol held in two batches: PCM-A expires first."""
    record_stock_movement(
        medication_id=paracetamol.id,
        movement_type=MovementType.RECEIPT,
        quantity=100,
        unit_cost=Decimal('0.10'),
        batch_number='PCM-B',
        expiry_date=today + timedelta(days=200),
    )
    record_stock_movement(
        medication_id=paracetamol.id,
        movement_type=MovementType.RECEIPT,
        quantity=60,
        unit_cost=Decimal('0.12'),
        batch_number='PCM-A',
        expiry_date=today + timedelta(days=20),
    )
    paracetamol.refresh_from_db()
    return paracetamol
