import hashlib
import hmac
import logging

import requests

from vendorvault.enums import PaymentMethod
from vendorvault.payments.base import Confirmation, PaymentProvider, PollResult

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-QR-Signature"
PAID_STATUSES = ("COMPLETED", "PAID")


class QrTransferProvider(PaymentProvider):
    """Bank QR transfer. Orders are matched by the QR reference stored on the payment."""

    name = PaymentMethod.QR_TRANSFER.value
    supports_polling = True

    def __init__(self, webhook_secret=None, api_url=None, api_key=None, timeout=15):
        self.webhook_secret = webhook_secret
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    def verify_signature(self, raw_body, headers) -> bool:
        signature = self.header(headers, SIGNATURE_HEADER)
        if not self.webhook_secret or not signature:
            return False

        expected = hmac.new(self.webhook_secret.encode(), raw_body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    def extract_confirmation(self, payload: dict) -> Confirmation:
        if payload.get("event") != "payment.completed" or not payload.get("orderId"):
            return self.not_final()

        return Confirmation(
            provider=self.name,
            is_final_success=True,
            external_order_id=payload["orderId"],
            external_reference=payload.get("transactionId") or payload["orderId"],
        )

    def check_status(self, payment) -> PollResult:
        if not self.api_url or not self.api_key or not payment.external_payment_id:
            return PollResult(confirmed=False)

        try:
            response = requests.get(
                f"{self.api_url}/orders/{payment.external_payment_id}/status",
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"QR status check failed for {payment.external_payment_id}: {e}", exc_info=True)
            return PollResult(confirmed=False)

        if response.ok and data.get("status") in PAID_STATUSES:
            return PollResult(
                confirmed=True,
                reference=data.get("transactionId") or payment.external_payment_id,
            )
        return PollResult(confirmed=False)
