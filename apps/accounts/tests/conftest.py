import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User, StaffRole


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
    """Create and return a clinic administrator."""
    return User.objects.create_user(
        email='admin@clinic.test',
        password='TestPass123!',
        display_name='Clinic Admin',
        role=StaffRole.ADMIN,
    )


@pytest.fixture
def doctor(db):
    """Create and return a doctor."""
    return User.objects.create_user(
        email='doctor@clinic.test',
        password='TestPass123!',
        first_name='Grace',
        last_name='Tan',
        role=StaffRole.DOCTOR,
    )


@pytest.fixture
def nurse(db):
    """Create and return a nurse."""
    return User.objects.create_user(
        email='nurse@clinic.test',
        password='TestPass123!',
        display_name='Nurse Joy',
        role=StaffRole.NURSE,
    )


@pytest.fixture
def receptionist(db):
    """Create and return a receptionist."""
    return User.objects.create_user(
        email='reception@clinic.test',
        password='TestPass123!',
        role=StaffRole.RECEPTIONIST,
    )


@pytest.fixture
def user_inactive(db):
    """Create and return a deactivated staff member."""
    return User.objects.create_user(
        email='inactive@clinic.test',
        password='TestPass123!',
        role=StaffRole.NURSE,
        is_active=False,
    )


@pytest.fixture
def admin_client(admin_user):
    """Return an API client authenticated as the administrator."""
    return _client_for(admin_user)


@pytest.fixture
def doctor_client(doctor):
    """Return an API client authenticated as the doctor."""
    return _client_for(doctor)


@pytest.fixture
def nurse_client(nurse):
    return _client_for(nurse)
