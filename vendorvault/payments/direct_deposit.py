from datetime import timedelta
from decimal import Decimal, InvalidOperation
from urllib.parse import urlencode
import hashlib
import hmac
import logging
import time

import requests

from vendorvault.enums import PaymentMethod
from vendorvault.payments.base import Confirmation, PaymentProvider, PollResult
from vendorvault.utils.helpers import CENT

logger = logging.getLogger(__name__)

DEPOSIT_HISTORY_PATH = "/sapi/v1/capital/deposit/hisrec"
LOOKBACK = timedelta(minutes=60)
# 1 = success, 6 = credited
CREDITED_STATUSES = (1, 6)


class DirectDepositProvider(PaymentProvider):
    """
    Stablecoin deposit to the platform address. There is no webhook: the
    deposit history is polled and a deposit counts only when its memo and
    amount both match the payment.
    """

    name = PaymentMethod.DIRECT_DEPOSIT.value
    supports_polling = True

    def __init__(self, api_url=None, api_key=None, api_secret=None, coin="USDT", timeout=15):
        self.api_url = api_url
        self.api_key = api_key
        self.api_secret = api_secret
        self.coin = coin
        self.timeout = timeout

    def verify_signature(self, raw_body, headers) -> bool:
        # No inbound callbacks exist for this rail
        return False

    def extract_confirmation(self, deposit: dict) -> Confirmation:
        if deposit.get("status") not in CREDITED_STATUSES or not deposit.get("addressTag"):
            return self.not_final()

        return Confirmation(
            provider=self.name,
            is_final_success=True,
            external_order_id=deposit["addressTag"].upper(),
            external_reference=deposit.get("txId"),
        )

    def _signed_query(self, params: dict) -> str:
        query = urlencode(params)
        signature = hmac.new(self.api_secret.encode(), query.encode(), hashlib.sha256).hexdigest()
        return f"{query}&signature={signature}"

    def fetch_deposits(self, coin: str) -> list:
        now_ms = int(time.time() * 1000)
        params = {
            "coin": coin,
            "startTime": now_ms - int(LOOKBACK.total_seconds() * 1000),
            "limit": 100,
            "recvWindow": 10000,
            "timestamp": now_ms,
        }
        response = requests.get(
            f"{self.api_url}{DEPOSIT_HISTORY_PATH}?{self._signed_query(params)}",
            headers={"X-MBX-APIKEY": self.api_key},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, list) else []

    @staticmethod
    def matches(deposit: dict, memo: str, expected_amount: Decimal) -> bool:
        if (deposit.get("addressTag") or "").upper() != memo.upper():
            return False
        if deposit.get("status") not in CREDITED_STATUSES:
            return False
        try:
            amount = Decimal(str(deposit.get("amount")))
        except (InvalidOperation, ValueError):
            return False
        return abs(amount - expected_amount) < CENT

    def check_status(self, payment) -> PollResult:
        details = payment.payment_details or {}
        memo = payment.external_payment_id or details.get("memo_code")
        if not self.api_key or not self.api_secret or not memo:
            return PollResult(confirmed=False)

        expected_amount = Decimal(str(details.get("expected_amount", payment.amount)))

        try:
            deposits = self.fetch_deposits(details.get("coin") or self.coin)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Deposit history query failed for memo {memo}: {e}", exc_info=True)
            return PollResult(confirmed=False)

        for deposit in deposits:
            if self.matches(deposit, memo, expected_amount):
                confirmation = self.extract_confirmation(deposit)
                return PollResult(
                    confirmed=True,
                    reference=confirmation.external_reference,
                    amount=Decimal(str(deposit["amount"])),
                )

        return PollResult(confirmed=False)
