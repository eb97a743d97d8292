import base64
import hashlib
import hmac
import json
import logging

from vendorvault.enums import PaymentMethod
from vendorvault.payments.base import Confirmation, PaymentProvider

logger = logging.getLogger(__name__)

FINAL_PAID_STATUSES = ("paid", "paid_over")


def sign_payload(payload: dict, api_key: str) -> str:
    """md5(base64(compact JSON without the sign field) + api key)"""
    unsigned = {key: value for key, value in payload.items() if key != "sign"}
    encoded = json.dumps(unsigned, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return hashlib.md5(base64.b64encode(encoded) + api_key.encode("utf-8")).hexdigest()


class CryptoInvoiceProvider(PaymentProvider):
    """Hosted crypto invoice. The signature lives inside the JSON body."""

    name = PaymentMethod.CRYPTO_INVOICE.value

    def __init__(self, api_key: str = None):
        self.api_key = api_key

    def verify_signature(self, raw_body, headers) -> bool:
        if not self.api_key:
            return False

        try:
            payload = self.parse(raw_body)
        except ValueError:
            return False

        received = payload.get("sign") if isinstance(payload, dict) else None
        if not isinstance(received, str) or not received:
            return False

        return hmac.compare_digest(sign_payload(payload, self.api_key), received)

    def extract_confirmation(self, payload: dict) -> Confirmation:
        if payload.get("is_final") is not True or payload.get("status") not in FINAL_PAID_STATUSES:
            return self.not_final()

        order_ids = []
        additional = payload.get("additional_data")
        if additional:
            try:
                metadata = additional if isinstance(additional, dict) else json.loads(additional)
                order_ids = metadata.get("orderIds") or []
            except (TypeError, ValueError, AttributeError):
                logger.error(f"Crypto invoice additional_data is not an order metadata object: {additional!r}")
        if isinstance(order_ids, str):
            order_ids = [order_id for order_id in order_ids.split(",") if order_id]
        elif not isinstance(order_ids, list):
            order_ids = []

        return Confirmation(
            provider=self.name,
            is_final_success=True,
            order_ids=[str(order_id) for order_id in order_ids],
            external_reference=payload.get("uuid") or payload.get("order_id"),
        )
