import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, StaffPermission, StaffRole
from apps.accounts.services import (
    get_effective_permissions,
    has_clinic_permission,
    set_staff_permissions,
    UnknownPermissionError,
)
from apps.clinic.services import update_setting


# =============================================================================
# Login Tests
# =============================================================================

@pytest.mark.django_db
class TestLogin:
    """Tests for POST /api/auth/login/"""

    def test_login_success(self, api_client, doctor):
        """Successfully login with valid credentials."""
        url = reverse('users:login')
        data = {
            'email': doctor.email,
            'password': 'TestPass123!',
        }
        response = api_client.post(url, data)

        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data['tokens']
        assert 'refresh' in response.data['tokens']
        assert response.data['user']['email'] == doctor.email
        assert response.data['user']['role'] == StaffRole.DOCTOR

    def test_login_is_case_insensitive(self, api_client, doctor):
        url = reverse('users:login')
        response = api_client.post(url, {'email': 'DOCTOR@clinic.test', 'password': 'TestPass123!'})

        assert response.status_code == status.HTTP_200_OK

    def test_login_wrong_password(self, api_client, doctor):
        """Login fails with wrong password."""
        url = reverse('users:login')
        response = api_client.post(url, {'email': doctor.email, 'password': 'WrongPassword123!'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert 'error' in response.data

    def test_failed_login_logged(self, api_client, doctor, caplog):
        url = reverse('users:login')
        api_client.post(url, {'email': doctor.email, 'password': 'WrongPassword123!'})

        record = next(r for r in caplog.records if r.name == 'apps.accounts.views')
        assert record.levelname == 'WARNING'
        assert 'Invalid email or password' in record.getMessage()

    def test_login_nonexistent_user(self, api_client):
        """Login fails for non-existent user."""
        url = reverse('users:login')
        response = api_client.post(url, {'email': 'nobody@clinic.test', 'password': 'SomePass123!'})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_login_inactive_user(self, api_client, user_inactive):
        """Deactivated staff cannot log in."""
        url = reverse('users:login')
        response = api_client.post(url, {'email': user_inactive.email, 'password': 'TestPass123!'})

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_login_updates_last_login(self, api_client, doctor):
        """Login updates last_login timestamp."""
        url = reverse('users:login')
        response = api_client.post(url, {'email': doctor.email, 'password': 'TestPass123!'})

        assert response.status_code == status.HTTP_200_OK
        doctor.refresh_from_db()
        assert doctor.last_login is not None


# =============================================================================
# Logout Tests
# =============================================================================

@pytest.mark.django_db
class TestLogout:
    """Tests for POST /api/auth/logout/"""

    def test_logout_success(self, doctor_client, doctor):
        url = reverse('users:logout')
        refresh = RefreshToken.for_user(doctor)
        response = doctor_client.post(url, {'refresh': str(refresh)})

        assert response.status_code == status.HTTP_200_OK

    def test_logout_invalid_token(self, doctor_client):
        url = reverse('users:logout')
        response = doctor_client.post(url, {'refresh': 'not-a-token'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_logout_unauthenticated(self, api_client):
        url = reverse('users:logout')
        response = api_client.post(url, {})

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# Profile Tests
# =============================================================================

@pytest.mark.django_db
class TestProfile:
    """Tests for /api/auth/user/ and /api/auth/user/update/"""

    def test_current_user(self, nurse_client, nurse):
        response = nurse_client.get(reverse('users:current-user'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['email'] == nurse.email
        assert response.data['permissions']['manage_procurement'] is True
        assert response.data['permissions']['adjust_stock'] is False

    def test_update_profile(self, nurse_client, nurse):
        url = reverse('users:update-profile')
        response = nurse_client.patch(url, {'display_name': 'Sister Joy', 'phone': '+60 12-345'})

        assert response.status_code == status.HTTP_200_OK
        nurse.refresh_from_db()
        assert nurse.display_name == 'Sister Joy'
        assert nurse.phone == '+60 12-345'

    def test_update_profile_cannot_change_role(self, nurse_client, nurse):
        url = reverse('users:update-profile')
        nurse_client.patch(url, {'role': StaffRole.ADMIN})

        nurse.refresh_from_db()
        assert nurse.role == StaffRole.NURSE


# =============================================================================
# Staff Management Tests
# =============================================================================

@pytest.mark.django_db
class TestStaffManagement:
    """Tests for /api/auth/staff/"""

    def test_list_requires_admin(self, doctor_client):
        response = doctor_client.get(reverse('users:staff-list'))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_list_filter_by_role(self, admin_client, doctor, nurse):
        response = admin_client.get(reverse('users:staff-list'), {'role': StaffRole.NURSE})

        assert response.status_code == status.HTTP_200_OK
        emails = [member['email'] for member in response.data]
        assert emails == [nurse.email]

    def test_create_staff_member(self, admin_client):
        data = {
            'email': 'locum@clinic.test',
            'password': 'Sturdy-Pass-991',
            'role': StaffRole.LOCUM,
            'first_name': 'Ali',
        }
        response = admin_client.post(reverse('users:staff-list'), data)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['role'] == StaffRole.LOCUM
        assert User.objects.get(email='locum@clinic.test').check_password('Sturdy-Pass-991')

    def test_create_uses_default_role(self, admin_client):
        data = {'email': 'new@clinic.test', 'password': 'Sturdy-Pass-991'}
        response = admin_client.post(reverse('users:staff-list'), data)

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['role'] == StaffRole.RECEPTIONIST

    def test_create_duplicate_email(self, admin_client, doctor):
        data = {'email': 'Doctor@Clinic.test', 'password': 'Sturdy-Pass-991'}
        response = admin_client.post(reverse('users:staff-list'), data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_create_respects_doctor_limit(self, admin_client, admin_user, doctor):
        update_setting(category='staff', key='max_doctors', value=1, user=admin_user)
        data = {
            'email': 'second.doctor@clinic.test',
            'password': 'Sturdy-Pass-991',
            'role': StaffRole.DOCTOR,
        }
        response = admin_client.post(reverse('users:staff-list'), data)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'Doctor limit' in response.data['error']

    def test_update_role(self, admin_client, receptionist):
        url = reverse('users:staff-detail', args=[receptionist.id])
        response = admin_client.patch(url, {'role': StaffRole.NURSE})

        assert response.status_code == status.HTTP_200_OK
        receptionist.refresh_from_db()
        assert receptionist.role == StaffRole.NURSE

    def test_delete_deactivates(self, admin_client, nurse):
        url = reverse('users:staff-detail', args=[nurse.id])
        response = admin_client.delete(url)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        nurse.refresh_from_db()
        assert nurse.is_active is False

    def test_cannot_deactivate_self(self, admin_client, admin_user):
        url = reverse('users:staff-detail', args=[admin_user.id])
        response = admin_client.delete(url)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        admin_user.refresh_from_db()
        assert admin_user.is_active is True

    def test_reactivate(self, admin_client, user_inactive):
        url = reverse('users:staff-reactivate', args=[user_inactive.id])
        response = admin_client.post(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['is_active'] is True


# =============================================================================
# Permission Tests
# =============================================================================

@pytest.mark.django_db
class TestStaffPermissions:
    """Tests for /api/auth/staff/{id}/permissions/"""

    def test_get_permissions(self, admin_client, doctor):
        url = reverse('users:staff-permissions', args=[doctor.id])
        response = admin_client.get(url)

        assert response.status_code == status.HTTP_200_OK
        assert response.data['permissions']['adjust_stock'] is True
        assert response.data['permissions']['manage_users'] is False

    def test_grant_override(self, admin_client, nurse):
        url = reverse('users:staff-permissions', args=[nurse.id])
        response = admin_client.put(url, {'permissions': {'adjust_stock': True}}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['permissions']['adjust_stock'] is True
        assert has_clinic_permission(nurse, 'adjust_stock') is True

    def test_grant_then_read_back(self, admin_client, nurse):
        url = reverse('users:staff-permissions', args=[nurse.id])
        admin_client.put(url, {'permissions': {'approve_purchase_orders': True}}, format='json')

        response = admin_client.get(url)

        assert response.data['permissions']['approve_purchase_orders'] is True

    def test_set_on_prefetched_user_returns_new_value(self, nurse):
        """The returned map reflects rows written in the same call."""
        prefetched = User.objects.prefetch_related('staff_permissions').get(id=nurse.id)
        assert list(prefetched.staff_permissions.all()) == []

        effective = set_staff_permissions(user=prefetched, permissions={'adjust_stock': True})

        assert effective['adjust_stock'] is True
        assert get_effective_permissions(prefetched)['adjust_stock'] is True

    def test_unknown_permission_rejected(self, admin_client, nurse):
        url = reverse('users:staff-permissions', args=[nurse.id])
        response = admin_client.put(url, {'permissions': {'launch_rockets': True}}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_override_matching_default_is_not_stored(self, doctor):
        set_staff_permissions(user=doctor, permissions={'adjust_stock': True})

        assert not StaffPermission.objects.filter(user=doctor).exists()

    def test_revoke_then_restore(self, doctor):
        set_staff_permissions(user=doctor, permissions={'adjust_stock': False})
        assert has_clinic_permission(doctor, 'adjust_stock') is False

        set_staff_permissions(user=doctor, permissions={'adjust_stock': True})
        assert has_clinic_permission(doctor, 'adjust_stock') is True
        assert not StaffPermission.objects.filter(user=doctor).exists()

    def test_service_rejects_unknown_permission(self, doctor):
        with pytest.raises(UnknownPermissionError):
            set_staff_permissions(user=doctor, permissions={'fly': True})

    def test_superuser_holds_everything(self, db):
        root = User.objects.create_superuser(email='root@clinic.test', password='TestPass123!')

        assert all(get_effective_permissions(root).values())
