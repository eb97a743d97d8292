from datetime import datetime, timedelta
from typing import List, Optional
import logging

from vendorvault.enums import OrderStatus, PaymentStatus
from vendorvault.extensions import db
from vendorvault.models.order import Order
from vendorvault.models.payment import Payment
from vendorvault.services.fulfillment_service import FulfillmentService
from vendorvault.services.risk_service import RiskAssessment
from vendorvault.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class DeliveryScheduler:
    @staticmethod
    def schedule(order: Order, assessment: RiskAssessment, now: datetime) -> Optional[datetime]:
        """Hold a risky order in PROCESSING until its ready-at time. Does not commit."""
        if not assessment.should_delay:
            return None

        order.status = OrderStatus.PROCESSING
        order.delivery_scheduled_at = now + timedelta(minutes=assessment.delay_minutes)
        logger.info(
            f"Order {order.order_number} delayed {assessment.delay_minutes} min "
            f"(risk score {assessment.score})"
        )
        return order.delivery_scheduled_at

    @staticmethod
    def due_orders(now: datetime) -> List[Order]:
        # Only orders whose payment has actually been received are released
        return (
            Order.query.join(Payment, Payment.order_id == Order.id)
            .filter(
                Order.status == OrderStatus.PROCESSING,
                Order.payment_status == PaymentStatus.PENDING,
                Order.delivery_scheduled_at.isnot(None),
                Order.delivery_scheduled_at <= now,
                Payment.confirmed_at.isnot(None),
            )
            .order_by(Order.delivery_scheduled_at.asc())
            .all()
        )

    @staticmethod
    def process_delayed(now: Optional[datetime] = None) -> dict:
        """
        Feed every due order into fulfillment. One order failing never stops
        the batch; it stays PROCESSING and is retried on the next sweep.
        """
        now = now or utcnow()
        orders = DeliveryScheduler.due_orders(now)
        targets = [(order.id, order.buyer_id) for order in orders]

        processed = 0
        failed = 0
        for order_id, buyer_id in targets:
            order = db.session.get(Order, order_id)
            try:
                if FulfillmentService.fulfill_order(order, buyer_id, f"delayed_{order_id}"):
                    processed += 1
            except Exception as e:
                failed += 1
                logger.error(f"Delayed delivery failed for order {order_id}: {e}", exc_info=True)

        if targets:
            logger.info(f"Delayed sweep: {processed} processed, {failed} failed of {len(targets)}")
        return {"processed": processed, "failed": failed}
