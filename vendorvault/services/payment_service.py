from collections import OrderedDict
from datetime import datetime
from typing import Iterable, List, Mapping, Optional
import logging

from vendorvault.enums import OrderStatus, PaymentMethod, PaymentStatus
from vendorvault.exceptions import NotFoundError, PaymentVerificationError
from vendorvault.extensions import db
from vendorvault.models.order import Order
from vendorvault.models.payment import Payment
from vendorvault.payments import Confirmation, WEBHOOK_PROVIDERS, get_provider
from vendorvault.services.fulfillment_service import FulfillmentService
from vendorvault.utils.helpers import utcnow

logger = logging.getLogger(__name__)

POLLABLE_PROVIDERS = (PaymentMethod.QR_TRANSFER.value, PaymentMethod.DIRECT_DEPOSIT.value)
SETTLED_PAYMENT_STATUSES = (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED)

# confirm_orders outcomes
FULFILLED = "fulfilled"
ALREADY_PROCESSED = "already_processed"
DEFERRED = "deferred"
EXPIRED = "expired"
SKIPPED = "skipped"
FAILED = "failed"


class PaymentService:
    @staticmethod
    def resolve_orders(confirmation: Confirmation) -> List[Order]:
        query = Order.query.join(Payment, Payment.order_id == Order.id).filter(
            Payment.provider == confirmation.provider
        )
        if confirmation.order_ids:
            return query.filter(Order.id.in_(confirmation.order_ids)).all()
        if confirmation.external_order_id:
            return query.filter(Payment.external_payment_id == confirmation.external_order_id).all()
        return []

    @staticmethod
    def handle_webhook(provider_name: str, raw_body: bytes, headers: Mapping[str, str]) -> dict:
        if provider_name not in WEBHOOK_PROVIDERS:
            raise NotFoundError(f"Unknown payment provider: {provider_name}")

        provider = get_provider(provider_name)
        if not provider.verify_signature(raw_body, headers):
            logger.warning(f"Rejected {provider_name} webhook: invalid signature")
            raise PaymentVerificationError("Invalid signature")

        try:
            payload = provider.parse(raw_body)
        except ValueError:
            raise PaymentVerificationError("Malformed payload")

        confirmation = provider.extract_confirmation(payload)
        if not confirmation.is_final_success:
            return {"status": "ignored"}

        orders = PaymentService.resolve_orders(confirmation)
        if not orders:
            logger.warning(
                f"{provider_name} webhook matched no orders "
                f"(ids={confirmation.order_ids}, external={confirmation.external_order_id})"
            )
            return {"status": "ignored"}

        results = PaymentService.confirm_orders(orders, confirmation.external_reference)
        return {"status": "ok", "results": results}

    @staticmethod
    def record_received(payment_id: str, external_reference: Optional[str], now: datetime) -> bool:
        """
        Mark funds as received. Conditional on the payment still being pending
        so it cannot race with the expiry sweep.
        """
        values = {Payment.confirmed_at: now}
        if external_reference:
            values[Payment.transaction_reference] = external_reference

        try:
            rows = (
                db.session.query(Payment)
                .filter(Payment.id == payment_id, Payment.status == PaymentStatus.PENDING)
                .update(values, synchronize_session=False)
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return rows == 1

    @staticmethod
    def confirm_orders(
        orders: Iterable[Order],
        external_reference: Optional[str],
        triggering_user_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> dict:
        """
        Apply a confirmed payment to each order. Returns order id -> outcome.
        A fulfillment failure is isolated to its order and reported as failed.
        """
        now = now or utcnow()
        targets = [
            (order.id, order.buyer_id, order.status, order.payment_status, order.delivery_scheduled_at, order.payment)
            for order in orders
        ]
        results = OrderedDict()

        for order_id, buyer_id, status, payment_status, scheduled_at, payment in targets:
            if status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
                results[order_id] = SKIPPED
                continue
            if payment_status != PaymentStatus.PENDING:
                results[order_id] = ALREADY_PROCESSED
                continue
            if payment is not None:
                if payment.is_expired(now):
                    logger.warning(f"Confirmation for order {order_id} arrived after expiry")
                    results[order_id] = EXPIRED
                    continue
                if payment.confirmed_at is None and not PaymentService.record_received(
                    payment.id, external_reference, now
                ):
                    results[order_id] = EXPIRED
                    continue

            if scheduled_at and scheduled_at > now:
                logger.info(f"Order {order_id} paid, delivery scheduled at {scheduled_at.isoformat()}")
                results[order_id] = DEFERRED
                continue

            order = db.session.get(Order, order_id)
            try:
                fulfilled = FulfillmentService.fulfill_order(
                    order, triggering_user_id or buyer_id, external_reference or f"confirm_{order_id}"
                )
                results[order_id] = FULFILLED if fulfilled else ALREADY_PROCESSED
            except Exception as e:
                logger.error(f"Confirmation of order {order_id} failed: {e}", exc_info=True)
                results[order_id] = FAILED

        return results

    @staticmethod
    def admin_confirm(order_id: str, admin_id: str, reference: Optional[str] = None) -> dict:
        order = db.session.get(Order, order_id)
        if not order:
            raise NotFoundError("Order not found")
        if order.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
            raise ValueError(f"Order is {order.status.value}")

        results = PaymentService.confirm_orders(
            [order], reference or f"manual_{order_id}", triggering_user_id=admin_id
        )
        logger.info(f"Admin {admin_id} confirmed order {order_id}: {results[order_id]}")
        return {"order_id": order_id, "result": results[order_id]}

    @staticmethod
    def _overall_status(orders: List[Order], now: datetime) -> Optional[str]:
        if all(order.payment_status in SETTLED_PAYMENT_STATUSES for order in orders):
            return "completed"
        for order in orders:
            if order.payment_status in SETTLED_PAYMENT_STATUSES:
                continue
            payment = order.payment
            if order.payment_status == PaymentStatus.FAILED or order.status == OrderStatus.CANCELLED:
                return "expired"
            if payment is not None and payment.is_expired(now):
                return "expired"
        return None

    @staticmethod
    def poll_status(order_ids: List[str], buyer_id: str, now: Optional[datetime] = None) -> dict:
        """
        Buyer-facing status check. Expiry is decided before any provider
        call, so a late deposit can never complete an expired order.
        """
        now = now or utcnow()
        orders = Order.query.filter(Order.id.in_(order_ids), Order.buyer_id == buyer_id).all()
        if not orders:
            raise NotFoundError("Orders not found")

        status = PaymentService._overall_status(orders, now)
        if status:
            return {"status": status}

        # One provider check per distinct payment reference
        groups = OrderedDict()
        for order in orders:
            payment = order.payment
            if order.payment_status != PaymentStatus.PENDING or payment is None:
                continue
            if payment.confirmed_at is not None or payment.provider not in POLLABLE_PROVIDERS:
                continue
            key = (payment.provider, payment.external_payment_id or payment.id)
            groups.setdefault(key, []).append(order)

        for (provider_name, _), group in groups.items():
            try:
                result = get_provider(provider_name).check_status(group[0].payment)
            except Exception as e:
                logger.error(f"{provider_name} status check failed: {e}", exc_info=True)
                continue
            if result.confirmed:
                PaymentService.confirm_orders(group, result.reference, now=now)

        orders = Order.query.filter(Order.id.in_(order_ids), Order.buyer_id == buyer_id).all()
        return {"status": PaymentService._overall_status(orders, now) or "pending"}

    @staticmethod
    def expire_stale_payments(now: Optional[datetime] = None) -> int:
        """Fail unpaid payments past their window and cancel their orders"""
        now = now or utcnow()
        stale_ids = [
            payment_id
            for (payment_id,) in db.session.query(Payment.id).filter(
                Payment.status == PaymentStatus.PENDING,
                Payment.confirmed_at.is_(None),
                Payment.expires_at.isnot(None),
                Payment.expires_at <= now,
            )
        ]

        expired = 0
        for payment_id in stale_ids:
            try:
                rows = (
                    db.session.query(Payment)
                    .filter(
                        Payment.id == payment_id,
                        Payment.status == PaymentStatus.PENDING,
                        Payment.confirmed_at.is_(None),
                    )
                    .update({Payment.status: PaymentStatus.FAILED}, synchronize_session=False)
                )
                if rows != 1:
                    db.session.rollback()
                    continue

                payment = db.session.get(Payment, payment_id, populate_existing=True)
                db.session.query(Order).filter(
                    Order.id == payment.order_id,
                    Order.payment_status == PaymentStatus.PENDING,
                    Order.status.in_((OrderStatus.PENDING, OrderStatus.PROCESSING)),
                ).update(
                    {Order.status: OrderStatus.CANCELLED, Order.payment_status: PaymentStatus.FAILED},
                    synchronize_session=False,
                )
                db.session.commit()
                expired += 1
            except Exception as e:
                db.session.rollback()
                logger.error(f"Failed to expire payment {payment_id}: {e}", exc_info=True)

        if expired:
            logger.info(f"Expired {expired} stale payments")
        return expired
