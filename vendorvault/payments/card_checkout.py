import logging

import stripe

from vendorvault.enums import PaymentMethod
from vendorvault.payments.base import Confirmation, PaymentProvider

logger = logging.getLogger(__name__)

COMPLETED_EVENT = "checkout.session.completed"


class CardCheckoutProvider(PaymentProvider):
    """Hosted card checkout. Order ids travel in the session metadata."""

    name = PaymentMethod.CARD_CHECKOUT.value

    def __init__(self, webhook_secret: str = None):
        self.webhook_secret = webhook_secret

    def verify_signature(self, raw_body, headers) -> bool:
        signature = self.header(headers, "Stripe-Signature")
        if not self.webhook_secret or not signature:
            return False

        try:
            stripe.Webhook.construct_event(raw_body, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"Card checkout signature rejected: {e}")
            return False
        return True

    def extract_confirmation(self, payload: dict) -> Confirmation:
        if payload.get("type") != COMPLETED_EVENT:
            return self.not_final()

        session = (payload.get("data") or {}).get("object") or {}
        if session.get("payment_status") == "unpaid":
            return self.not_final()

        metadata = session.get("metadata") or {}
        order_ids = [order_id for order_id in (metadata.get("orderIds") or "").split(",") if order_id]

        return Confirmation(
            provider=self.name,
            is_final_success=True,
            order_ids=order_ids,
            external_reference=session.get("payment_intent") or session.get("id"),
        )
