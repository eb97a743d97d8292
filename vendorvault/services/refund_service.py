from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
import logging

from vendorvault.enums import (
    NotificationType,
    OrderStatus,
    PaymentStatus,
    ProductType,
    RefundStatus,
    RefundType,
    TransactionType,
)
from vendorvault.exceptions import NotFoundError, RefundNotAllowedError
from vendorvault.extensions import db
from vendorvault.models.order import Order
from vendorvault.models.payment import Payment
from vendorvault.models.refund import RefundRequest
from vendorvault.models.user import SellerProfile
from vendorvault.services.inventory_service import InventoryService
from vendorvault.services.notification_service import NotificationService
from vendorvault.services.wallet_service import WalletService
from vendorvault.utils.helpers import to_money, utcnow

logger = logging.getLogger(__name__)

REFUND_WINDOW = timedelta(days=30)
DEFAULT_DURATION_DAYS = 30
ACTIVE_REFUND_STATUSES = (RefundStatus.PENDING, RefundStatus.APPROVED, RefundStatus.PROCESSED)


@dataclass(frozen=True)
class RefundCalculation:
    refund_amount: Decimal
    total_days: int
    used_days: int
    remaining_days: int
    refund_type: RefundType


def calculate_prorated_refund(
    original_amount: Decimal, total_days: int, delivered_at: datetime, now: datetime
) -> RefundCalculation:
    """refund = original * remaining / total, rounded to cents. Same-day refunds are full."""
    original_amount = to_money(original_amount)
    used_days = max(0, (now - delivered_at).days)
    remaining_days = max(0, total_days - used_days)

    if remaining_days <= 0:
        return RefundCalculation(Decimal("0.00"), total_days, min(used_days, total_days), 0, RefundType.PARTIAL_PRORATED)

    if used_days == 0:
        return RefundCalculation(original_amount, total_days, 0, total_days, RefundType.FULL)

    refund_amount = to_money(original_amount * Decimal(remaining_days) / Decimal(total_days))
    return RefundCalculation(refund_amount, total_days, used_days, remaining_days, RefundType.PARTIAL_PRORATED)


class RefundService:
    @staticmethod
    def _calculate(order: Order, now: datetime):
        streaming_items = [item for item in order.items if item.product_type == ProductType.STREAMING]
        if not streaming_items:
            raise RefundNotAllowedError("Only streaming products can be refunded")

        total = Decimal("0.00")
        summary = None
        for item in streaming_items:
            delivered_at = item.delivered_at or order.completed_at or order.created_at
            calc = calculate_prorated_refund(
                item.total_price,
                item.product.duration_days or DEFAULT_DURATION_DAYS,
                delivered_at,
                now,
            )
            total += calc.refund_amount
            summary = summary or calc

        if total <= 0:
            raise RefundNotAllowedError("The subscription period has already been used")

        return to_money(total), summary, [item.id for item in streaming_items]

    @staticmethod
    def process_refund(order_id: str, buyer_id: str, reason: str = None, now: Optional[datetime] = None) -> RefundRequest:
        """
        Prorated refund for a completed streaming order, auto-approved.
        The COMPLETED -> REFUNDED flip is conditional so a second request
        for the same order can never credit the wallet twice.
        """
        now = now or utcnow()

        try:
            order = (
                db.session.query(Order)
                .filter(Order.id == order_id, Order.buyer_id == buyer_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not order:
                raise NotFoundError("Order not found")

            if order.status == OrderStatus.REFUNDED:
                raise RefundNotAllowedError("Order already refunded")

            active = RefundRequest.query.filter(
                RefundRequest.order_id == order_id,
                RefundRequest.status.in_(ACTIVE_REFUND_STATUSES),
            ).first()
            if active:
                raise RefundNotAllowedError("A refund request already exists for this order")

            if order.status != OrderStatus.COMPLETED:
                raise RefundNotAllowedError("Only completed orders can be refunded")

            if order.created_at < now - REFUND_WINDOW:
                raise RefundNotAllowedError("The 30 day refund window has expired")

            refund_amount, calc, item_ids = RefundService._calculate(order, now)

            rows = (
                db.session.query(Order)
                .filter(Order.id == order_id, Order.status == OrderStatus.COMPLETED)
                .update(
                    {
                        Order.status: OrderStatus.REFUNDED,
                        Order.payment_status: PaymentStatus.REFUNDED,
                        Order.refunded_amount: refund_amount,
                    },
                    synchronize_session=False,
                )
            )
            if rows != 1:
                raise RefundNotAllowedError("Order already refunded")

            refund = RefundRequest(
                order_id=order_id,
                buyer_id=buyer_id,
                refund_type=calc.refund_type,
                original_amount=order.total_amount,
                refund_amount=refund_amount,
                reason=reason,
                status=RefundStatus.PROCESSED,
                total_days=calc.total_days,
                used_days=calc.used_days,
                remaining_days=calc.remaining_days,
                processed_at=now,
            )
            db.session.add(refund)
            db.session.flush()

            WalletService.credit_wallet(
                buyer_id,
                refund_amount,
                TransactionType.REFUND_CREDIT,
                description=f"Refund for order {order.order_number}",
                order_id=order_id,
                refund_id=refund.id,
                commit=False,  # ensure only 1 commit
            )

            seller_share = to_money(refund_amount * (1 - order.commission_rate / Decimal("100")))
            db.session.query(SellerProfile).filter(SellerProfile.user_id == order.seller_id).update(
                {
                    SellerProfile.available_balance: SellerProfile.available_balance - seller_share,
                    SellerProfile.total_earnings: SellerProfile.total_earnings - seller_share,
                },
                synchronize_session=False,
            )

            db.session.query(Payment).filter(Payment.order_id == order_id).update(
                {Payment.status: PaymentStatus.REFUNDED}, synchronize_session=False
            )
            InventoryService.expire_profiles(item_ids)

            db.session.commit()

        except Exception:
            db.session.rollback()
            raise

        logger.info(
            f"Refund {refund.id} processed for order {order_id}: {refund_amount} "
            f"({calc.used_days}/{calc.total_days} days used)"
        )

        NotificationService.notify(
            buyer_id,
            NotificationType.REFUND_PROCESSED,
            "Refund processed",
            f"Your refund of ${refund_amount} has been processed.",
            f"/buyer/orders/{order_id}",
        )
        NotificationService.notify(
            buyer_id,
            NotificationType.WALLET_CREDITED,
            "Wallet credited",
            f"${refund_amount} was added to your wallet.",
            "/buyer/wallet",
        )
        return refund
