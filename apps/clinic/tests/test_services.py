import pytest
from decimal import Decimal

from apps.clinic.models import ClinicSetting, ServicePricing
from apps.clinic.services import (
    get_setting_value,
    get_category_settings,
    update_setting,
    update_multiple_settings,
    apply_price_rounding,
    create_price_tier,
    delete_price_tier,
    set_service_pricing,
    resolve_price,
    render_document_template,
    list_template_fields,
    create_document_template,
    InvalidSettingValueError,
    UnknownSettingError,
    DuplicateTierError,
    TierInUseError,
    PriceTierNotFoundError,
    InvalidPriceRangeError,
)


# =============================================================================
# Settings
# =============================================================================

@pytest.mark.django_db
class TestClinicSettings:

    def test_unsaved_setting_returns_default(self):
        assert get_setting_value('staff', 'default_user_role') == 'receptionist'
        assert get_category_settings('payment')['default_currency'] == 'MYR'

    def test_values_round_trip_with_type(self, admin_user):
        update_setting(category='notifications', key='sms_enabled', value=True, user=admin_user)
        update_setting(category='payment', key='payment_methods', value=['cash', 'ewallet'])
        update_setting(category='notifications', key='reminder_hours_before', value=48)

        assert get_setting_value('notifications', 'sms_enabled') is True
        assert get_setting_value('payment', 'payment_methods') == ['cash', 'ewallet']
        assert get_setting_value('notifications', 'reminder_hours_before') == 48

    def test_data_type_follows_definition(self):
        # a numeric string is coerced, so the row is still typed as a number
        setting = update_setting(category='payment', key='tax_rate', value='6')

        assert setting.data_type == 'number'
        assert setting.setting_value == '6'
        assert get_setting_value('payment', 'tax_rate') == 6
        assert update_setting(category='payment', key='payment_methods', value=['cash']).data_type == 'json'

    def test_update_records_editor(self, admin_user):
        update_setting(category='basic_info', key='clinic_name', value='Klinik Sejahtera', user=admin_user)

        row = ClinicSetting.objects.get(setting_category='basic_info', setting_key='clinic_name')
        assert row.setting_value == 'Klinik Sejahtera'
        assert row.updated_by == admin_user

    def test_out_of_range_number_rejected(self):
        with pytest.raises(InvalidSettingValueError):
            update_setting(category='payment', key='tax_rate', value=150)

    def test_invalid_choice_rejected(self):
        with pytest.raises(InvalidSettingValueError):
            update_setting(category='payment', key='default_currency', value='XYZ')

    def test_unknown_key_rejected(self):
        with pytest.raises(UnknownSettingError):
            update_setting(category='payment', key='lucky_number', value=7)

    def test_bulk_update_is_all_or_nothing(self):
        with pytest.raises(InvalidSettingValueError):
            update_multiple_settings(
                category='payment',
                values={'tax_rate': 6, 'price_rounding': 'sideways'},
            )

        assert not ClinicSetting.objects.filter(setting_key='tax_rate').exists()

    @pytest.mark.parametrize('mode, amount, expected', [
        ('nearest_cent', '10.125', '10.13'),
        ('round_up', '10.01', '10.05'),
        ('round_down', '10.04', '10.00'),
    ])
    def test_price_rounding(self, mode, amount, expected):
        assert apply_price_rounding(Decimal(amount), mode) == Decimal(expected)


# =============================================================================
# Pricing
# =============================================================================

@pytest.mark.django_db
class TestPricing:

    def test_panel_payment_forces_verification(self):
        tier = create_price_tier(tier_name='Corporate', payment_methods=['panel'])

        assert tier.requires_verification is True

    def test_attached_panel_forces_verification(self, panel):
        tier = create_price_tier(tier_name='Insurer', panel_ids=[panel.id])

        assert tier.requires_verification is True
        assert list(tier.panels.all()) == [panel]

    def test_duplicate_name_case_insensitive(self, standard_tier):
        with pytest.raises(DuplicateTierError):
            create_price_tier(tier_name='STANDARD')

    def test_tier_in_use_cannot_be_deleted(self, standard_tier, consultation):
        set_service_pricing(service=consultation, prices={standard_tier.id: '40.00'})

        with pytest.raises(TierInUseError):
            delete_price_tier(tier=standard_tier)

    def test_service_pricing_upserts(self, standard_tier, consultation):
        set_service_pricing(service=consultation, prices={standard_tier.id: '40.00'})
        set_service_pricing(service=consultation, prices={str(standard_tier.id): '42.50'})

        rows = ServicePricing.objects.filter(service=consultation)
        assert rows.count() == 1
        assert rows.get().price == Decimal('42.50')

    def test_unknown_tier_rejected(self, consultation):
        with pytest.raises(PriceTierNotFoundError):
            set_service_pricing(
                service=consultation,
                prices={'00000000-0000-0000-0000-000000000000': '10.00'},
            )

    def test_resolve_price_falls_back_to_base(self, standard_tier, panel_tier, consultation):
        set_service_pricing(service=consultation, prices={panel_tier.id: '30.00'})

        assert resolve_price(consultation, panel_tier) == Decimal('30.00')
        assert resolve_price(consultation, standard_tier) == Decimal('35.00')
        assert resolve_price(consultation, None) == Decimal('35.00')


# =============================================================================
# Document templates
# =============================================================================

@pytest.mark.django_db
class TestDocumentTemplates:

    def test_render_fills_known_fields(self, mc_template):
        result = render_document_template(mc_template, {'patient_name': 'Ali'})

        assert 'Ali is unfit' in result['content']
        assert result['missing_fields'] == ['mc_days']

    def test_list_fields_deduplicates(self):
        assert list_template_fields('{{a}} {{ b }} {{a}}') == ['a', 'b']

    def test_price_range_validated(self):
        with pytest.raises(InvalidPriceRangeError):
            create_document_template(
                template_name='Bill',
                template_type='billings',
                content='Total',
                price_from=Decimal('50.00'),
                price_to=Decimal('10.00'),
            )
