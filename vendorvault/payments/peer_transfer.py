import hashlib
import hmac
import json
import logging

from vendorvault.enums import PaymentMethod
from vendorvault.payments.base import Confirmation, PaymentProvider

logger = logging.getLogger(__name__)

TIMESTAMP_HEADER = "BinancePay-Timestamp"
NONCE_HEADER = "BinancePay-Nonce"
SIGNATURE_HEADER = "BinancePay-Signature"


def sign_body(secret: str, timestamp: str, nonce: str, raw_body: bytes) -> str:
    message = f"{timestamp}\n{nonce}\n".encode("utf-8") + raw_body + b"\n"
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha512).hexdigest().upper()


class PeerTransferProvider(PaymentProvider):
    """Wallet-to-merchant transfer, matched by the merchant trade number"""

    name = PaymentMethod.PEER_TRANSFER.value

    def __init__(self, secret: str = None):
        self.secret = secret

    def verify_signature(self, raw_body, headers) -> bool:
        timestamp = self.header(headers, TIMESTAMP_HEADER)
        nonce = self.header(headers, NONCE_HEADER)
        signature = self.header(headers, SIGNATURE_HEADER)
        if not self.secret or not timestamp or not nonce or not signature:
            return False

        return hmac.compare_digest(sign_body(self.secret, timestamp, nonce, raw_body), signature)

    def extract_confirmation(self, payload: dict) -> Confirmation:
        if payload.get("bizType") != "PAY" or payload.get("bizStatus") != "PAY_SUCCESS":
            return self.not_final()

        data = payload.get("data") or {}
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                logger.error("Peer transfer data field is not valid JSON")
                return self.not_final()

        trade_no = data.get("merchantTradeNo")
        if not trade_no:
            return self.not_final()

        return Confirmation(
            provider=self.name,
            is_final_success=True,
            external_order_id=trade_no,
            external_reference=data.get("transactionId") or trade_no,
        )
