from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import List, Optional

from vendorvault.enums import OrderStatus, PaymentMethod
from vendorvault.extensions import db
from vendorvault.models.order import Order
from vendorvault.models.user import User
from vendorvault.services.settings_service import RiskSettings, SettingsService
from vendorvault.utils.helpers import to_money, utcnow

HIGH_VALUE_POINTS = 30
MANUAL_REVIEW_POINTS = 20
NEW_ACCOUNT_POINTS = 20
FIRST_PURCHASE_POINTS = 10
VELOCITY_POINTS = 15
CRYPTO_POINTS = 5

REVIEW_SCORE = 51
DELAY_SCORE = 31
VELOCITY_LIMIT = 3
NEW_ACCOUNT_AGE = timedelta(hours=24)
VELOCITY_WINDOW = timedelta(hours=1)

CRYPTO_METHODS = frozenset({PaymentMethod.CRYPTO_INVOICE.value, PaymentMethod.PEER_TRANSFER.value})
VELOCITY_STATUSES = (OrderStatus.PENDING, OrderStatus.PROCESSING, OrderStatus.COMPLETED)


@dataclass(frozen=True)
class BuyerHistory:
    account_created_at: Optional[datetime]
    completed_orders: int
    recent_orders: int


@dataclass(frozen=True)
class RiskAssessment:
    score: int
    is_high_value: bool
    requires_manual_review: bool
    should_delay: bool
    delay_minutes: int
    reasons: List[str] = field(default_factory=list)


def score_order(
    total: Decimal,
    payment_method: str,
    item_count: int,
    history: BuyerHistory,
    settings: RiskSettings,
    now: datetime,
) -> RiskAssessment:
    """
    Additive fraud score for a new order.

    0-30 delivers instantly, 31-50 is delayed when a delay is configured,
    51 and above (or any total over the review threshold) is held for
    manual review.
    """
    total = to_money(total)
    score = 0
    reasons = []

    if total >= settings.high_value_threshold:
        score += HIGH_VALUE_POINTS
        reasons.append(f"High value order (${total} >= ${settings.high_value_threshold})")

    if total >= settings.manual_review_threshold:
        score += MANUAL_REVIEW_POINTS
        reasons.append(f"Above manual review threshold (${total} >= ${settings.manual_review_threshold})")

    if history.account_created_at is not None and now - history.account_created_at < NEW_ACCOUNT_AGE:
        score += NEW_ACCOUNT_POINTS
        reasons.append("Account created less than 24 hours ago")

    if history.completed_orders == 0:
        score += FIRST_PURCHASE_POINTS
        reasons.append("First purchase")

    if history.recent_orders >= VELOCITY_LIMIT:
        score += VELOCITY_POINTS
        reasons.append(f"{history.recent_orders} orders in the last hour")

    if getattr(payment_method, "value", payment_method) in CRYPTO_METHODS:
        score += CRYPTO_POINTS
        reasons.append("Crypto payment")

    should_delay = score >= DELAY_SCORE and settings.delivery_delay_minutes > 0

    return RiskAssessment(
        score=score,
        is_high_value=total >= settings.high_value_threshold,
        requires_manual_review=score >= REVIEW_SCORE or total >= settings.manual_review_threshold,
        should_delay=should_delay,
        delay_minutes=settings.delivery_delay_minutes if should_delay else 0,
        reasons=reasons,
    )


class RiskService:
    @staticmethod
    def buyer_history(buyer_id: str, now: datetime) -> BuyerHistory:
        buyer = db.session.get(User, buyer_id)

        completed = Order.query.filter_by(buyer_id=buyer_id, status=OrderStatus.COMPLETED).count()
        recent = Order.query.filter(
            Order.buyer_id == buyer_id,
            Order.created_at >= now - VELOCITY_WINDOW,
            Order.status.in_(VELOCITY_STATUSES),
        ).count()

        return BuyerHistory(
            account_created_at=buyer.created_at if buyer else None,
            completed_orders=completed,
            recent_orders=recent,
        )

    @staticmethod
    def assess(
        buyer_id: str,
        total: Decimal,
        payment_method: str,
        item_count: int,
        settings: Optional[RiskSettings] = None,
        now: Optional[datetime] = None,
    ) -> RiskAssessment:
        now = now or utcnow()
        settings = settings or SettingsService.get()
        history = RiskService.buyer_history(buyer_id, now)
        return score_order(total, payment_method, item_count, history, settings, now)
