import pytest
from datetime import timedelta
from decimal import Decimal
from vendorvault.enums import OrderStatus, PaymentMethod
from vendorvault.extensions import db
from vendorvault.models.settings import PlatformSettings
from vendorvault.services.risk_service import BuyerHistory, RiskService, score_order
from vendorvault.services.settings_service import RiskSettings, SettingsService
from vendorvault.utils.helpers import utcnow


def _settings(delay=0):
    return RiskSettings(
        high_value_threshold=Decimal("100.00"),
        manual_review_threshold=Decimal("500.00"),
        delivery_delay_minutes=delay,
    )


class TestScoreOrder:
    """Pure scoring function"""

    def test_new_buyer_high_value_card_order(self):
        now = utcnow()
        history = BuyerHistory(account_created_at=now - timedelta(hours=2), completed_orders=0, recent_orders=0)

        result = score_order(Decimal("150.00"), PaymentMethod.CARD_CHECKOUT.value, 1, history, _settings(), now)

        assert result.score == 60
        assert result.is_high_value is True
        assert result.requires_manual_review is True
        assert result.should_delay is False
        assert len(result.reasons) == 3

    def test_delay_only_when_configured(self):
        now = utcnow()
        history = BuyerHistory(account_created_at=now - timedelta(hours=2), completed_orders=0, recent_orders=0)

        result = score_order(Decimal("150.00"), PaymentMethod.CARD_CHECKOUT.value, 1, history, _settings(delay=30), now)

        assert result.should_delay is True
        assert result.delay_minutes == 30

    def test_established_buyer_small_order_is_clean(self):
        now = utcnow()
        history = BuyerHistory(account_created_at=now - timedelta(days=90), completed_orders=4, recent_orders=0)

        result = score_order(Decimal("20.00"), PaymentMethod.WALLET.value, 1, history, _settings(delay=30), now)

        assert result.score == 0
        assert result.reasons == []
        assert result.requires_manual_review is False
        assert result.should_delay is False

    def test_velocity_and_crypto_points(self):
        now = utcnow()
        history = BuyerHistory(account_created_at=now - timedelta(days=90), completed_orders=2, recent_orders=3)

        result = score_order(Decimal("20.00"), PaymentMethod.PEER_TRANSFER.value, 1, history, _settings(), now)

        assert result.score == 15 + 5

    def test_review_threshold_forces_review_regardless_of_score(self):
        now = utcnow()
        history = BuyerHistory(account_created_at=now - timedelta(days=90), completed_orders=9, recent_orders=0)

        result = score_order(Decimal("500.00"), PaymentMethod.CARD_CHECKOUT.value, 1, history, _settings(), now)

        assert result.score == 50
        assert result.requires_manual_review is True

    def test_delay_band_starts_at_31(self):
        now = utcnow()
        history = BuyerHistory(account_created_at=now - timedelta(hours=1), completed_orders=0, recent_orders=0)

        at_30 = score_order(Decimal("10.00"), PaymentMethod.CARD_CHECKOUT.value, 1, history, _settings(delay=10), now)
        at_35 = score_order(Decimal("10.00"), PaymentMethod.CRYPTO_INVOICE.value, 1, history, _settings(delay=10), now)

        assert at_30.score == 30
        assert at_30.should_delay is False
        assert at_35.score == 35
        assert at_35.should_delay is True
        assert at_35.requires_manual_review is False


class TestRiskService:
    """History lookups and settings snapshot"""

    def test_assess_uses_buyer_history(self, app, buyer_user, gift_card_product, place_order):
        place_order(gift_card_product, method=PaymentMethod.WALLET.value)

        result = RiskService.assess(buyer_user.id, Decimal("20.00"), PaymentMethod.WALLET.value, 1)

        # New account only; the first purchase is already completed
        assert result.score == 20

    def test_settings_update_applies_to_next_assessment(self, app, buyer_user):
        before = RiskService.assess(buyer_user.id, Decimal("60.00"), PaymentMethod.CARD_CHECKOUT.value, 1)
        assert before.is_high_value is False

        SettingsService.update(high_value_threshold=Decimal("50.00"), delivery_delay_minutes=15)

        after = RiskService.assess(buyer_user.id, Decimal("60.00"), PaymentMethod.CARD_CHECKOUT.value, 1)
        assert after.is_high_value is True
        assert after.score == 60
        assert after.should_delay is True
        assert after.delay_minutes == 15

    def test_settings_default_to_config(self, app):
        settings = SettingsService.get()

        assert settings.high_value_threshold == Decimal("100.00")
        assert settings.manual_review_threshold == Decimal("500.00")
        assert settings.delivery_delay_minutes == 0

    def test_change_saved_by_another_process_is_picked_up(self, app):
        SettingsService.update(delivery_delay_minutes=15)
        cached = SettingsService.get()
        assert SettingsService.get() is cached

        # Another worker saves new thresholds; this process never called update()
        db.session.query(PlatformSettings).update(
            {
                PlatformSettings.delivery_delay_minutes: 90,
                PlatformSettings.version: PlatformSettings.version + 1,
            },
            synchronize_session=False,
        )
        db.session.commit()

        assert SettingsService.get().delivery_delay_minutes == 90

    def test_checkout_records_risk_on_order(self, app, buyer_user, gift_card_product, place_order):
        SettingsService.update(delivery_delay_minutes=30)

        order = place_order(gift_card_product, method=PaymentMethod.CRYPTO_INVOICE.value)

        assert order.risk_score == 35
        assert order.status == OrderStatus.PROCESSING
        assert order.delivery_scheduled_at is not None
        assert order.requires_manual_review is False
