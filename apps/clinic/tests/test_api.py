import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.urls import reverse
from rest_framework import status

from apps.clinic.models import PriceTier
from apps.clinic.services import get_setting_value, set_service_pricing, update_setting


# =============================================================================
# Settings
# =============================================================================

@pytest.mark.django_db
class TestSettingsAPI:
    """Tests for /api/clinic/settings/"""

    def test_overview_lists_categories(self, receptionist_client):
        response = receptionist_client.get(reverse('clinic:settings'))

        assert response.status_code == status.HTTP_200_OK
        assert set(response.data) == {'basic_info', 'payment', 'notifications', 'staff'}

    def test_unknown_category(self, admin_client):
        url = reverse('clinic:settings-category', args=['weather'])
        response = admin_client.get(url)

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_admin_updates_category(self, admin_client):
        url = reverse('clinic:settings-category', args=['payment'])
        response = admin_client.put(url, {'values': {'tax_rate': 6, 'default_currency': 'SGD'}}, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['default_currency'] == 'SGD'
        assert get_setting_value('payment', 'tax_rate') == 6

    def test_invalid_value_returns_error(self, admin_client):
        url = reverse('clinic:settings-category', args=['payment'])
        response = admin_client.put(url, {'values': {'tax_rate': -1}}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'error' in response.data

    def test_receptionist_cannot_update(self, receptionist_client):
        url = reverse('clinic:settings-category', args=['payment'])
        response = receptionist_client.put(url, {'values': {'tax_rate': 6}}, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unauthenticated(self, api_client):
        response = api_client.get(reverse('clinic:settings'))

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestLogoAPI:
    """Tests for /api/clinic/logo/"""

    def test_rejects_non_image(self, admin_client):
        upload = SimpleUploadedFile('notes.txt', b'hello', content_type='text/plain')
        response = admin_client.post(reverse('clinic:logo'), {'file': upload}, format='multipart')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_upload_and_remove(self, admin_client, settings, tmp_path):
        settings.MEDIA_ROOT = tmp_path
        upload = SimpleUploadedFile('logo.png', b'\x89PNG\r\n\x1a\nfake', content_type='image/png')

        response = admin_client.post(reverse('clinic:logo'), {'file': upload}, format='multipart')
        assert response.status_code == status.HTTP_201_CREATED
        assert get_setting_value('basic_info', 'logo_path') == response.data['logo_path']

        response = admin_client.delete(reverse('clinic:logo'))
        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert get_setting_value('basic_info', 'logo_path') == ''


# =============================================================================
# Price tiers and services
# =============================================================================

@pytest.mark.django_db
class TestPriceTierAPI:
    """Tests for /api/clinic/price-tiers/"""

    def test_create_tier(self, admin_client, panel):
        data = {'tier_name': 'Insurance', 'tier_type': 'insurance', 'panel_ids': [str(panel.id)]}
        response = admin_client.post(reverse('clinic:price-tier-list'), data, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['requires_verification'] is True
        assert response.data['panels'][0]['code'] == 'MEDIC-01'

    def test_duplicate_tier(self, admin_client, standard_tier):
        response = admin_client.post(reverse('clinic:price-tier-list'), {'tier_name': 'standard'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_delete_tier_in_use_conflicts(self, admin_client, standard_tier, consultation):
        url = reverse('clinic:service-pricing', args=[consultation.id])
        admin_client.put(url, {'prices': {str(standard_tier.id): '40.00'}}, format='json')

        response = admin_client.delete(reverse('clinic:price-tier-detail', args=[standard_tier.id]))

        assert response.status_code == status.HTTP_409_CONFLICT
        assert PriceTier.objects.filter(id=standard_tier.id).exists()

    def test_rejected_delete_logged(self, admin_client, standard_tier, consultation, caplog):
        url = reverse('clinic:service-pricing', args=[consultation.id])
        admin_client.put(url, {'prices': {str(standard_tier.id): '40.00'}}, format='json')

        admin_client.delete(reverse('clinic:price-tier-detail', args=[standard_tier.id]))

        assert [r.levelname for r in caplog.records if r.name == 'apps.clinic.views'] == ['WARNING']

    def test_receptionist_can_read(self, receptionist_client, standard_tier):
        response = receptionist_client.get(reverse('clinic:price-tier-list'))

        assert response.status_code == status.HTTP_200_OK


@pytest.mark.django_db
class TestMedicalServiceAPI:
    """Tests for /api/clinic/services/"""

    def test_set_pricing(self, admin_client, standard_tier, panel_tier, consultation):
        url = reverse('clinic:service-pricing', args=[consultation.id])
        data = {'prices': {str(standard_tier.id): '35.00', str(panel_tier.id): '31.50'}}
        response = admin_client.put(url, data, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert {row['tier_name'] for row in response.data} == {'Standard', 'Panel'}

    def test_tier_price(self, receptionist_client, standard_tier, panel_tier, consultation):
        set_service_pricing(service=consultation, prices={panel_tier.id: '30.02'})
        update_setting(category='payment', key='price_rounding', value='round_down')
        url = reverse('clinic:service-detail', args=[consultation.id])

        panel = receptionist_client.get(url, {'tier': str(panel_tier.id)})
        standard = receptionist_client.get(url, {'tier': str(standard_tier.id)})

        assert panel.data['tier_price'] == '30.00'
        assert standard.data['tier_price'] == '35.00'

    def test_tier_must_be_a_uuid(self, receptionist_client, consultation):
        response = receptionist_client.get(reverse('clinic:service-list'), {'tier': 'panel'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_filter_by_category(self, admin_client, consultation):
        response = admin_client.get(reverse('clinic:service-list'), {'category': 'consultation'})

        assert response.status_code == status.HTTP_200_OK
        assert [s['name'] for s in response.data] == ['General Consultation']


@pytest.mark.django_db
class TestDocumentTemplateAPI:
    """Tests for /api/clinic/document-templates/"""

    def test_render(self, receptionist_client, mc_template):
        url = reverse('clinic:document-template-render-document', args=[mc_template.id])
        response = receptionist_client.post(
            url,
            {'context': {'patient_name': 'Ali', 'mc_days': '2'}},
            format='json'
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data['content'].endswith('for 2 day(s).')
        assert response.data['missing_fields'] == []

    def test_smart_fields(self, receptionist_client):
        response = receptionist_client.get(reverse('clinic:document-template-smart-fields'))

        assert 'patient_name' in response.data['fields']

    def test_fields_used(self, admin_client, mc_template):
        response = admin_client.get(reverse('clinic:document-template-detail', args=[mc_template.id]))

        assert response.data['fields_used'] == ['patient_name', 'mc_days']
