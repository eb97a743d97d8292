from typing import Optional
import logging

from vendorvault.enums import (
    NotificationType,
    OrderStatus,
    PaymentStatus,
    TransactionType,
)
from vendorvault.exceptions import NotFoundError
from vendorvault.extensions import db
from vendorvault.models.accounting import AuditLog, CommissionEntry
from vendorvault.models.order import Order, OrderItem
from vendorvault.models.payment import Payment
from vendorvault.models.user import SellerProfile
from vendorvault.services.fulfillment_service import FulfillmentService
from vendorvault.services.inventory_service import InventoryService
from vendorvault.services.notification_service import NotificationService
from vendorvault.services.wallet_service import WalletService
from vendorvault.utils.helpers import utcnow

logger = logging.getLogger(__name__)

OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.UNDER_REVIEW)


class ReviewService:
    @staticmethod
    def get_queue(page: int = 1, per_page: int = 20):
        """Flagged orders an admin has not released or rejected yet"""
        return (
            Order.query.filter(
                Order.requires_manual_review.is_(True),
                Order.status.in_(OPEN_STATUSES),
            )
            .order_by(Order.created_at.asc())
            .paginate(page=page, per_page=per_page, error_out=False)
        )

    @staticmethod
    def _audit(admin_id: str, action: str, order: Order, **details):
        db.session.add(
            AuditLog(
                user_id=admin_id,
                action=action,
                entity_type="order",
                entity_id=order.id,
                details=details,
            )
        )

    @staticmethod
    def approve(order_id: str, admin_id: str) -> Order:
        now = utcnow()
        order = db.session.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found")

        fulfill_now = False
        try:
            if order.status == OrderStatus.UNDER_REVIEW:
                rows = (
                    db.session.query(Order)
                    .filter(Order.id == order_id, Order.status == OrderStatus.UNDER_REVIEW)
                    .update(
                        {
                            Order.status: OrderStatus.COMPLETED,
                            Order.requires_manual_review: False,
                            Order.completed_at: now,
                            Order.reviewed_at: now,
                            Order.reviewed_by: admin_id,
                        },
                        synchronize_session=False,
                    )
                )
                if rows != 1:
                    raise ValueError("Order was already reviewed")
            elif order.status in (OrderStatus.PENDING, OrderStatus.PROCESSING) and order.requires_manual_review:
                payment = order.payment
                paid = payment is not None and payment.confirmed_at is not None
                values = {
                    Order.requires_manual_review: False,
                    Order.reviewed_at: now,
                    Order.reviewed_by: admin_id,
                }
                if paid:
                    # Due now. If the release below fails, the delayed sweep picks it up
                    values[Order.status] = OrderStatus.PROCESSING
                    values[Order.delivery_scheduled_at] = now
                rows = (
                    db.session.query(Order)
                    .filter(
                        Order.id == order_id,
                        Order.status == order.status,
                        Order.payment_status == PaymentStatus.PENDING,
                    )
                    .update(values, synchronize_session=False)
                )
                if rows != 1:
                    raise ValueError("Order changed while being reviewed")
                fulfill_now = paid
            else:
                raise ValueError(f"Order is not awaiting review ({order.status.value})")

            ReviewService._audit(admin_id, "order.approve", order, fulfill_now=fulfill_now)
            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        if fulfill_now:
            reference = order.payment.transaction_reference or f"review_{order_id}"
            try:
                FulfillmentService.fulfill_order(order, admin_id, reference)
            except Exception as e:
                logger.error(
                    f"Release of approved order {order_id} failed, left for the delayed sweep: {e}",
                    exc_info=True,
                )

        order = db.session.get(Order, order_id, populate_existing=True)
        logger.info(f"Admin {admin_id} approved order {order_id} ({order.status.value})")

        if order.status == OrderStatus.COMPLETED and not fulfill_now:
            NotificationService.notify(
                order.buyer_id,
                NotificationType.ORDER_COMPLETED,
                "Order approved",
                f"Order {order.order_number} passed review. Your codes are ready.",
                f"/buyer/orders/{order.id}",
            )
        return order

    @staticmethod
    def reject(order_id: str, admin_id: str, reason: Optional[str] = None) -> Order:
        """
        Cancel a flagged order. Money that already arrived goes back to the
        buyer's wallet: a fulfilled order also has its earnings, commission
        and inventory undone, while a paid order still waiting on its delay
        only needs the credit.
        """
        now = utcnow()
        order = db.session.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found")

        try:
            fulfilled = order.payment_status == PaymentStatus.COMPLETED
            received = fulfilled or (order.payment is not None and order.payment.confirmed_at is not None)
            payment_status = PaymentStatus.REFUNDED if received else PaymentStatus.FAILED

            rows = (
                db.session.query(Order)
                .filter(
                    Order.id == order_id,
                    Order.status.in_(OPEN_STATUSES),
                    Order.payment_status == order.payment_status,
                )
                .update(
                    {
                        Order.status: OrderStatus.CANCELLED,
                        Order.payment_status: payment_status,
                        Order.reviewed_at: now,
                        Order.reviewed_by: admin_id,
                    },
                    synchronize_session=False,
                )
            )
            if rows != 1:
                raise ValueError(f"Order cannot be rejected ({order.status.value})")

            db.session.query(Payment).filter(Payment.order_id == order_id).update(
                {Payment.status: payment_status}, synchronize_session=False
            )

            if received:
                ReviewService._refund_to_wallet(order)
            if fulfilled:
                ReviewService._reverse_fulfillment(order, now)

            ReviewService._audit(
                admin_id, "order.reject", order, reason=reason, refunded=received, fulfilled=fulfilled
            )
            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        order = db.session.get(Order, order_id, populate_existing=True)
        logger.info(f"Admin {admin_id} rejected order {order_id} (refunded={received}, fulfilled={fulfilled})")

        NotificationService.notify(
            order.buyer_id,
            NotificationType.ORDER_CANCELLED,
            "Order cancelled",
            f"Order {order.order_number} was cancelled after review."
            + (" The full amount was returned to your wallet." if received else ""),
            f"/buyer/orders/{order.id}",
        )
        return order

    @staticmethod
    def _refund_to_wallet(order: Order):
        WalletService.credit_wallet(
            order.buyer_id,
            order.total_amount,
            TransactionType.REFUND_CREDIT,
            description=f"Refund for rejected order {order.order_number}",
            order_id=order.id,
            commit=False,  # ensure only 1 commit
        )
        order.refunded_amount = order.total_amount

    @staticmethod
    def _reverse_fulfillment(order: Order, now):
        db.session.query(SellerProfile).filter(SellerProfile.user_id == order.seller_id).update(
            {
                SellerProfile.available_balance: SellerProfile.available_balance - order.seller_earnings,
                SellerProfile.total_earnings: SellerProfile.total_earnings - order.seller_earnings,
                SellerProfile.total_sales: SellerProfile.total_sales - 1,
            },
            synchronize_session=False,
        )

        db.session.query(CommissionEntry).filter(
            CommissionEntry.order_id == order.id, CommissionEntry.reversed_at.is_(None)
        ).update({CommissionEntry.reversed_at: now}, synchronize_session=False)

        item_ids = [item_id for (item_id,) in db.session.query(OrderItem.id).filter(OrderItem.order_id == order.id)]
        InventoryService.release_gift_codes(item_ids)
        InventoryService.expire_profiles(item_ids)
        db.session.query(OrderItem).filter(OrderItem.order_id == order.id).update(
            {OrderItem.is_delivered: False, OrderItem.delivered_at: None}, synchronize_session=False
        )
