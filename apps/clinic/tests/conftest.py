import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, StaffRole
from apps.clinic.models import Panel, PriceTier, MedicalService, DocumentTemplate


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        email='clinic_admin@clinic.test',
        password='TestPass123!',
        role=StaffRole.ADMIN,
    )


@pytest.fixture
def receptionist(db):
    return User.objects.create_user(
        email='clinic_reception@clinic.test',
        password='TestPass123!',
        role=StaffRole.RECEPTIONIST,
    )


@pytest.fixture
def admin_client(admin_user):
    """Return API client authenticated as the administrator."""
    client = APIClient()
    refresh = RefreshToken.for_user(admin_user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture
def receptionist_client(receptionist):
    """Return API client authenticated as a receptionist (read-only for clinic config)."""
    client = APIClient()
    refresh = RefreshToken.for_user(receptionist)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


# =============================================================================
# Pricing
# =============================================================================

@pytest.fixture
def panel(db):
    return Panel.objects.create(name='MediCare Insurance', code='MEDIC-01')


@pytest.fixture
def standard_tier(db):
    return PriceTier.objects.create(
        tier_name='Standard',
        payment_methods=['cash', 'card'],
    )


@pytest.fixture
def panel_tier(db, panel):
    tier = PriceTier.objects.create(
        tier_name='Panel',
        tier_type='panel',
        payment_methods=['panel'],
        requires_verification=True,
    )
    tier.panels.add(panel)
    return tier


@pytest.fixture
def consultation(db):
    return MedicalService.objects.create(
        name='General Consultation',
        category='Consultation',
        price=Decimal('35.00'),
        duration_minutes=15,
    )


@pytest.fixture
def mc_template(db):
    return DocumentTemplate.objects.create(
        template_name='Medical certificate',
        template_type='medical_certificate',
        content='This certifies that {{patient_name}} is unfit for work for {{mc_days}} day(s).',
    )
