import pytest
from decimal import Decimal
from vendorvault.enums import CodeStatus, OrderStatus, PaymentMethod, PaymentStatus, ProductType
from vendorvault.exceptions import InsufficientFundsError, OutOfStockError, ProviderError
from vendorvault.extensions import db
from vendorvault.models.accounting import CommissionEntry
from vendorvault.models.inventory import GiftCardCode, ProvisioningOrder, StreamingAccount, StreamingProfile
from vendorvault.models.notification import Notification
from vendorvault.models.order import Order, OrderItem
from vendorvault.models.product import Product
from vendorvault.models.user import SellerProfile
from vendorvault.services.checkout_service import CheckoutService
from vendorvault.services.fulfillment_service import FulfillmentService
from vendorvault.services.inventory_service import InventoryService
from vendorvault.services.provisioning_service import SupplierClient
from vendorvault.utils.helpers import utcnow


class TestFulfillOrder:
    """Exactly-once delivery"""

    def test_fulfills_gift_card_order(self, app, buyer_user, seller_user, gift_card_product, place_order):
        order = place_order(gift_card_product, quantity=2)

        assert FulfillmentService.fulfill_order(order, buyer_user.id, "ref-1") is True

        order = db.session.get(Order, order.id, populate_existing=True)
        assert order.status == OrderStatus.COMPLETED
        assert order.payment_status == PaymentStatus.COMPLETED
        assert order.completed_at is not None
        assert order.payment.status == PaymentStatus.COMPLETED
        assert order.payment.transaction_reference == "ref-1"

        item = order.items[0]
        assert item.is_delivered is True
        assert len(item.gift_card_codes) == 2
        assert all(code.status == CodeStatus.SOLD for code in item.gift_card_codes)

        profile = SellerProfile.query.filter_by(user_id=seller_user.id).first()
        assert profile.available_balance == Decimal("36.00")
        assert profile.total_sales == 1
        assert CommissionEntry.query.filter_by(order_id=order.id).first().amount == Decimal("4.00")
        assert db.session.get(Product, gift_card_product.id).sold_count == 2

    def test_second_call_is_a_no_op(self, app, buyer_user, seller_user, gift_card_product, place_order):
        order = place_order(gift_card_product)

        assert FulfillmentService.fulfill_order(order, buyer_user.id, "webhook") is True
        assert FulfillmentService.fulfill_order(order, buyer_user.id, "poll") is False

        assert GiftCardCode.query.filter_by(status=CodeStatus.SOLD).count() == 1
        assert CommissionEntry.query.count() == 1
        assert SellerProfile.query.filter_by(user_id=seller_user.id).first().total_sales == 1

    def test_stale_order_object_is_still_a_no_op(self, app, buyer_user, gift_card_product, place_order):
        order = place_order(gift_card_product)
        order_id = order.id
        stale = Order(id=order_id, status=OrderStatus.PENDING, payment_status=PaymentStatus.PENDING)

        FulfillmentService.fulfill_order(db.session.get(Order, order_id), buyer_user.id, "first")

        # Caller still holds the pre-fulfillment view of the order
        assert FulfillmentService.fulfill_order(stale, buyer_user.id, "second") is False
        assert GiftCardCode.query.filter_by(status=CodeStatus.SOLD).count() == 1

    def test_out_of_stock_rolls_back_everything(self, app, buyer_user, seller_user, gift_card_product, place_order):
        order = place_order(gift_card_product, quantity=3)
        # Sell one code elsewhere so the third claim fails
        db.session.query(GiftCardCode).filter(
            GiftCardCode.id == GiftCardCode.query.first().id
        ).update({GiftCardCode.status: CodeStatus.EXPIRED}, synchronize_session=False)
        db.session.commit()

        with pytest.raises(OutOfStockError):
            FulfillmentService.fulfill_order(order, buyer_user.id, "ref")

        order = db.session.get(Order, order.id, populate_existing=True)
        assert order.payment_status == PaymentStatus.PENDING
        assert order.status == OrderStatus.PENDING
        assert GiftCardCode.query.filter_by(status=CodeStatus.SOLD).count() == 0
        assert CommissionEntry.query.count() == 0
        assert SellerProfile.query.filter_by(user_id=seller_user.id).first().total_sales == 0

    def test_codes_are_never_shared_between_orders(self, app, buyer_user, gift_card_product, place_order):
        first = place_order(gift_card_product)
        second = place_order(gift_card_product)

        FulfillmentService.fulfill_order(first, buyer_user.id, "a")
        FulfillmentService.fulfill_order(second, buyer_user.id, "b")

        sold = GiftCardCode.query.filter_by(status=CodeStatus.SOLD).all()
        assert len(sold) == 2
        assert len({code.order_item_id for code in sold}) == 2

    def test_manual_review_order_is_held(self, app, buyer_user, seller_user, place_order):
        product = Product(
            seller_id=seller_user.id,
            name="Gift Card $600",
            product_type=ProductType.GIFT_CARD,
            price=Decimal("600.00"),
        )
        db.session.add(product)
        db.session.commit()
        InventoryService.add_gift_codes(product.id, ["BIG-1"])

        order = place_order(product)
        assert order.requires_manual_review is True

        assert FulfillmentService.fulfill_order(order, buyer_user.id, "ref") is True

        order = db.session.get(Order, order.id, populate_existing=True)
        assert order.status == OrderStatus.UNDER_REVIEW
        assert order.completed_at is None
        assert "codes" not in order.to_dict(include_items=True)["items"][0]

        types = {n.type.value for n in Notification.query.filter_by(user_id=buyer_user.id)}
        assert "order_under_review" in types

    def test_completed_order_reveals_codes(self, app, buyer_user, gift_card_product, place_order):
        order = place_order(gift_card_product)
        FulfillmentService.fulfill_order(order, buyer_user.id, "ref")

        order = db.session.get(Order, order.id, populate_existing=True)
        codes = order.to_dict(include_items=True)["items"][0]["codes"]
        assert codes[0]["code"].startswith("STEAM-")

    def test_notifies_buyer_and_seller(self, app, buyer_user, seller_user, gift_card_product, place_order):
        order = place_order(gift_card_product)
        FulfillmentService.fulfill_order(order, buyer_user.id, "ref")

        assert Notification.query.filter_by(user_id=buyer_user.id).first().type.value == "order_completed"
        assert Notification.query.filter_by(user_id=seller_user.id).first().type.value == "new_sale"


class TestStreamingInventory:
    """Profile slots on shared accounts"""

    def test_profiles_are_numbered_per_account(self, app, buyer_user, streaming_product, place_order):
        first = place_order(streaming_product)
        second = place_order(streaming_product)

        FulfillmentService.fulfill_order(first, buyer_user.id, "a")
        FulfillmentService.fulfill_order(second, buyer_user.id, "b")

        numbers = sorted(p.profile_number for p in StreamingProfile.query.all())
        assert numbers == [1, 2]
        account = StreamingAccount.query.filter_by(product_id=streaming_product.id).first()
        assert account.used_profiles == 2

    def test_full_account_is_out_of_stock(self, app, buyer_user, streaming_product, place_order):
        order = place_order(streaming_product, quantity=3)

        with pytest.raises(OutOfStockError):
            FulfillmentService.fulfill_order(order, buyer_user.id, "ref")

        account = StreamingAccount.query.filter_by(product_id=streaming_product.id).first()
        db.session.refresh(account)
        assert account.used_profiles == 0
        assert StreamingProfile.query.count() == 0

    def test_claim_never_exceeds_max_profiles(self, app, buyer_user, streaming_product, place_order):
        order = place_order(streaming_product)
        item = order.items[0]
        now = utcnow()

        InventoryService.claim_streaming_profile(streaming_product.id, item.id, buyer_user.id, now)
        InventoryService.claim_streaming_profile(streaming_product.id, item.id, buyer_user.id, now)
        with pytest.raises(OutOfStockError):
            InventoryService.claim_streaming_profile(streaming_product.id, item.id, buyer_user.id, now)

        account = StreamingAccount.query.filter_by(product_id=streaming_product.id).first()
        db.session.refresh(account)
        assert account.used_profiles == account.max_profiles


class TestWalletCheckout:
    """Wallet payments fulfill in the checkout request"""

    def test_wallet_checkout_debits_and_delivers(self, app, buyer_user, gift_card_product, place_order):
        order = place_order(gift_card_product, method=PaymentMethod.WALLET.value)

        order = db.session.get(Order, order.id, populate_existing=True)
        assert order.status == OrderStatus.COMPLETED
        assert buyer_user.wallet.balance == Decimal("80.00")
        assert OrderItem.query.filter_by(order_id=order.id).first().is_delivered is True

    def test_wallet_checkout_insufficient_funds_creates_nothing(self, app, buyer_user, seller_user, place_order):
        product = Product(
            seller_id=seller_user.id,
            name="Gift Card $150",
            product_type=ProductType.GIFT_CARD,
            price=Decimal("150.00"),
        )
        db.session.add(product)
        db.session.commit()

        with pytest.raises(InsufficientFundsError):
            place_order(product, method=PaymentMethod.WALLET.value)

        assert Order.query.count() == 0


class TestSupplierProvisioning:
    """Supplier purchases cannot be rolled back with the order"""

    @pytest.fixture
    def supplier_calls(self, monkeypatch):
        state = {"references": [], "fail_on": None}

        def create_order(self, supplier_product_id, reference):
            state["references"].append(reference)
            if len(state["references"]) == state["fail_on"]:
                raise ProviderError("supplier timeout")
            return {"order_id": f"SUP-{reference}", "status": "pending", "code": None}

        monkeypatch.setattr(SupplierClient, "create_order", create_order)
        return state

    def test_supplier_not_called_when_local_stock_runs_out(
        self, app, buyer_user, gift_card_product, supplier_product, supplier_calls
    ):
        result = CheckoutService.create_orders(
            buyer_user.id,
            [
                {"product_id": supplier_product.id, "quantity": 1},
                {"product_id": gift_card_product.id, "quantity": 4},
            ],
            PaymentMethod.QR_TRANSFER.value,
        )
        order = result["orders"][0]

        for _ in range(2):
            with pytest.raises(OutOfStockError):
                FulfillmentService.fulfill_order(order, buyer_user.id, "ref")

        assert supplier_calls["references"] == []
        assert ProvisioningOrder.query.count() == 0
        assert db.session.get(Order, order.id, populate_existing=True).payment_status == PaymentStatus.PENDING

    def test_retry_reuses_supplier_references(self, app, buyer_user, supplier_product, place_order, supplier_calls):
        order = place_order(supplier_product, quantity=2)
        item_id = order.items[0].id
        supplier_calls["fail_on"] = 2

        with pytest.raises(ProviderError):
            FulfillmentService.fulfill_order(order, buyer_user.id, "ref")
        assert ProvisioningOrder.query.count() == 0

        assert FulfillmentService.fulfill_order(order, buyer_user.id, "ref") is True

        expected = [f"{item_id}:1", f"{item_id}:2"]
        assert supplier_calls["references"] == expected + expected
        assert sorted(p.reference for p in ProvisioningOrder.query.all()) == expected
