import logging

from vendorvault.enums import NotificationType, OrderStatus, PaymentStatus, ProductType
from vendorvault.exceptions import NotFoundError
from vendorvault.extensions import db
from vendorvault.models.accounting import CommissionEntry
from vendorvault.models.order import Order, OrderItem
from vendorvault.models.payment import Payment
from vendorvault.models.product import Product
from vendorvault.models.user import SellerProfile
from vendorvault.services.inventory_service import InventoryService
from vendorvault.services.notification_service import NotificationService
from vendorvault.services.provisioning_service import ProvisioningService
from vendorvault.utils.helpers import utcnow

logger = logging.getLogger(__name__)

FULFILLABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.UNDER_REVIEW)


class FulfillmentService:
    @staticmethod
    def _claim_payment(order_id: str) -> bool:
        """Flip payment_status PENDING -> COMPLETED. Only one caller can win."""
        rows = (
            db.session.query(Order)
            .filter(
                Order.id == order_id,
                Order.payment_status == PaymentStatus.PENDING,
                Order.status.in_(FULFILLABLE_STATUSES),
            )
            .update({Order.payment_status: PaymentStatus.COMPLETED}, synchronize_session=False)
        )
        return rows == 1

    @staticmethod
    def _deliver_item(order: Order, item: OrderItem, now):
        product = item.product

        if product.is_externally_provisioned:
            # Marked delivered by the provisioning step once every unit has a code
            for unit in range(1, item.quantity + 1):
                ProvisioningService.provision(order, item, unit, now)
        elif item.product_type == ProductType.STREAMING:
            for _ in range(item.quantity):
                InventoryService.claim_streaming_profile(product.id, item.id, order.buyer_id, now)
            InventoryService.mark_item_delivered(item.id, now)
        else:
            for _ in range(item.quantity):
                InventoryService.claim_gift_code(product.id, item.id, order.buyer_id, now)
            InventoryService.mark_item_delivered(item.id, now)

        db.session.query(Product).filter(Product.id == product.id).update(
            {Product.sold_count: Product.sold_count + item.quantity},
            synchronize_session=False,
        )

    @staticmethod
    def _post_earnings(order: Order, now):
        rows = (
            db.session.query(SellerProfile)
            .filter(SellerProfile.user_id == order.seller_id)
            .update(
                {
                    SellerProfile.available_balance: SellerProfile.available_balance + order.seller_earnings,
                    SellerProfile.total_earnings: SellerProfile.total_earnings + order.seller_earnings,
                    SellerProfile.total_sales: SellerProfile.total_sales + 1,
                },
                synchronize_session=False,
            )
        )
        if rows != 1:
            raise NotFoundError(f"Seller profile not found for seller {order.seller_id}")

        db.session.add(
            CommissionEntry(
                order_id=order.id,
                seller_id=order.seller_id,
                rate=order.commission_rate,
                amount=order.commission_amount,
            )
        )

    @staticmethod
    def fulfill_order(order: Order, triggering_user_id: str, external_reference: str) -> bool:
        """
        Deliver an order exactly once.

        Safe to call concurrently for the same order from any trigger. The
        payment_status flip is the first statement of the transaction, so a
        losing caller sees zero rows and returns False without side effects.
        Any failure rolls everything back and leaves the order retryable.
        """
        order_id = order.id
        now = utcnow()

        try:
            if not FulfillmentService._claim_payment(order_id):
                db.session.rollback()
                logger.info(f"Order {order_id} already fulfilled or not fulfillable, skipping ({external_reference})")
                return False

            order = db.session.get(Order, order_id, populate_existing=True)
            items = (
                db.session.query(OrderItem)
                .filter(OrderItem.order_id == order_id)
                .populate_existing()
                .all()
            )

            # Local claims first: a supplier purchase survives a rollback, so it
            # only happens once nothing else in the order can run out of stock
            items.sort(key=lambda i: i.product.is_externally_provisioned)
            for item in items:
                if not item.is_delivered:
                    FulfillmentService._deliver_item(order, item, now)

            held = order.requires_manual_review
            order.status = OrderStatus.UNDER_REVIEW if held else OrderStatus.COMPLETED
            order.completed_at = None if held else now
            order.fulfilled_by = triggering_user_id

            FulfillmentService._post_earnings(order, now)

            payment = (
                db.session.query(Payment)
                .filter(Payment.order_id == order_id)
                .populate_existing()
                .first()
            )
            if payment:
                payment.status = PaymentStatus.COMPLETED
                payment.completed_at = now
                payment.confirmed_at = payment.confirmed_at or now
                payment.transaction_reference = external_reference
                if not payment.external_payment_id:
                    payment.external_payment_id = external_reference

            db.session.commit()

        except Exception as e:
            db.session.rollback()
            logger.error(f"Fulfillment failed for order {order_id}: {e}", exc_info=True)
            raise

        logger.info(
            f"Order {order.order_number} fulfilled ({order.status.value}) "
            f"by {triggering_user_id}, ref={external_reference}"
        )
        FulfillmentService._notify(order, held)
        return True

    @staticmethod
    def _notify(order: Order, held: bool):
        link = f"/buyer/orders/{order.id}"
        if held:
            NotificationService.notify(
                order.buyer_id,
                NotificationType.ORDER_UNDER_REVIEW,
                "Order under review",
                f"Payment for order {order.order_number} was received. "
                "Your items will be released after a quick security review.",
                link,
            )
        else:
            NotificationService.notify(
                order.buyer_id,
                NotificationType.ORDER_COMPLETED,
                "Order completed",
                f"Order {order.order_number} is complete. Your codes are ready.",
                link,
            )

        NotificationService.notify(
            order.seller_id,
            NotificationType.NEW_SALE,
            "New sale",
            f"Order {order.order_number} was paid. Earnings: ${order.seller_earnings}",
            f"/seller/orders/{order.id}",
        )
