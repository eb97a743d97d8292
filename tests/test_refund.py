import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from vendorvault.enums import (
    OrderStatus,
    PaymentStatus,
    ProfileStatus,
    RefundType,
    TransactionType,
)
from vendorvault.exceptions import RefundNotAllowedError
from vendorvault.extensions import db
from vendorvault.models.inventory import StreamingProfile
from vendorvault.models.order import Order
from vendorvault.models.refund import RefundRequest
from vendorvault.models.user import SellerProfile
from vendorvault.models.wallet import WalletTransaction
from vendorvault.services.fulfillment_service import FulfillmentService
from vendorvault.services.refund_service import RefundService, calculate_prorated_refund
from vendorvault.services.wallet_service import WalletService


class TestProratedCalculation:
    """refund = original * remaining / total"""

    def test_ten_of_thirty_days_used(self):
        delivered = datetime(2024, 1, 1, 12, 0)

        calc = calculate_prorated_refund(Decimal("20.00"), 30, delivered, delivered + timedelta(days=10))

        assert calc.refund_amount == Decimal("13.33")
        assert calc.used_days == 10
        assert calc.remaining_days == 20
        assert calc.refund_type == RefundType.PARTIAL_PRORATED

    def test_same_day_is_full_refund(self):
        delivered = datetime(2024, 1, 1, 12, 0)

        calc = calculate_prorated_refund(Decimal("20.00"), 30, delivered, delivered + timedelta(hours=5))

        assert calc.refund_amount == Decimal("20.00")
        assert calc.refund_type == RefundType.FULL

    def test_fully_used_period_refunds_nothing(self):
        delivered = datetime(2024, 1, 1, 12, 0)

        calc = calculate_prorated_refund(Decimal("20.00"), 30, delivered, delivered + timedelta(days=45))

        assert calc.refund_amount == Decimal("0.00")
        assert calc.remaining_days == 0
        assert calc.used_days == 30

    def test_rounds_half_up_to_cents(self):
        delivered = datetime(2024, 1, 1)

        calc = calculate_prorated_refund(Decimal("10.00"), 7, delivered, delivered + timedelta(days=1))

        # 10 * 6 / 7 = 8.571...
        assert calc.refund_amount == Decimal("8.57")


@pytest.fixture
def completed_streaming_order(app, buyer_user, streaming_product, place_order):
    order = place_order(streaming_product)
    FulfillmentService.fulfill_order(order, buyer_user.id, "ref")
    return db.session.get(Order, order.id, populate_existing=True)


class TestProcessRefund:
    """Wallet refunds for streaming orders"""

    def test_prorated_refund_to_wallet(self, app, buyer_user, seller_user, completed_streaming_order):
        order = completed_streaming_order
        now = order.items[0].delivered_at + timedelta(days=10)

        refund = RefundService.process_refund(order.id, buyer_user.id, reason="Stopped working", now=now)

        assert refund.refund_amount == Decimal("13.33")
        assert refund.used_days == 10
        assert WalletService.get_wallet_by_user_id(buyer_user.id).balance == Decimal("113.33")

        order = db.session.get(Order, order.id, populate_existing=True)
        assert order.status == OrderStatus.REFUNDED
        assert order.payment_status == PaymentStatus.REFUNDED
        assert order.refunded_amount == Decimal("13.33")
        assert order.payment.status == PaymentStatus.REFUNDED

        credit = WalletTransaction.query.filter_by(type=TransactionType.REFUND_CREDIT).one()
        assert credit.refund_id == refund.id
        assert credit.order_id == order.id

        # Seller gives back their share of the refunded amount
        profile = SellerProfile.query.filter_by(user_id=seller_user.id).first()
        assert profile.available_balance == Decimal("18.00") - Decimal("12.00")

        assert StreamingProfile.query.one().status == ProfileStatus.EXPIRED

    def test_second_refund_is_rejected(self, app, buyer_user, completed_streaming_order):
        order = completed_streaming_order
        now = order.items[0].delivered_at + timedelta(days=10)
        RefundService.process_refund(order.id, buyer_user.id, now=now)

        with pytest.raises(RefundNotAllowedError, match="already refunded"):
            RefundService.process_refund(order.id, buyer_user.id, now=now)

        assert WalletService.get_wallet_by_user_id(buyer_user.id).balance == Decimal("113.33")
        assert RefundRequest.query.count() == 1
        assert WalletTransaction.query.filter_by(type=TransactionType.REFUND_CREDIT).count() == 1

    def test_gift_cards_are_not_refundable(self, app, buyer_user, gift_card_product, place_order):
        order = place_order(gift_card_product)
        FulfillmentService.fulfill_order(order, buyer_user.id, "ref")

        with pytest.raises(RefundNotAllowedError, match="streaming"):
            RefundService.process_refund(order.id, buyer_user.id)

        assert db.session.get(Order, order.id, populate_existing=True).status == OrderStatus.COMPLETED

    def test_unpaid_order_is_not_refundable(self, app, buyer_user, streaming_product, place_order):
        order = place_order(streaming_product)

        with pytest.raises(RefundNotAllowedError, match="completed"):
            RefundService.process_refund(order.id, buyer_user.id)

    def test_refund_window(self, app, buyer_user, completed_streaming_order):
        order = completed_streaming_order

        with pytest.raises(RefundNotAllowedError, match="window"):
            RefundService.process_refund(order.id, buyer_user.id, now=order.created_at + timedelta(days=31))

    def test_other_buyer_cannot_refund(self, app, seller_user, completed_streaming_order):
        with pytest.raises(ValueError, match="not found"):
            RefundService.process_refund(completed_streaming_order.id, seller_user.id)


class TestRefundRoute:
    """POST /api/buyer/orders/<id>/refund"""

    def test_refund_endpoint(self, client, buyer_headers, completed_streaming_order):
        response = client.post(
            f"/api/buyer/orders/{completed_streaming_order.id}/refund",
            headers=buyer_headers,
            json={"reason": "Changed my mind"},
        )

        assert response.status_code == 200
        assert response.json["refund"]["refund_amount"] == 20.00
        assert response.json["refund"]["refund_type"] == "full"

        again = client.post(
            f"/api/buyer/orders/{completed_streaming_order.id}/refund",
            headers=buyer_headers,
            json={},
        )
        assert again.status_code == 400
