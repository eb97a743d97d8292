import pytest
import hashlib
import hmac
import json
from decimal import Decimal
from vendorvault.payments import get_provider
from vendorvault.payments.card_checkout import CardCheckoutProvider
from vendorvault.payments.crypto_invoice import CryptoInvoiceProvider, sign_payload
from vendorvault.payments.direct_deposit import DirectDepositProvider
from vendorvault.payments.peer_transfer import PeerTransferProvider, sign_body
from vendorvault.payments.qr_transfer import QrTransferProvider


class TestCardCheckout:
    """Hosted card checkout adapter"""

    def _session_event(self, **session):
        return {
            "id": "evt_1",
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_1", "payment_intent": "pi_1", "payment_status": "paid", **session}},
        }

    def test_valid_signature(self, stripe_signature):
        provider = CardCheckoutProvider("whsec_test")
        body = json.dumps(self._session_event()).encode()

        assert provider.verify_signature(body, {"Stripe-Signature": stripe_signature(body, "whsec_test")})

    def test_wrong_secret_rejected(self, stripe_signature):
        provider = CardCheckoutProvider("whsec_test")
        body = json.dumps(self._session_event()).encode()

        assert not provider.verify_signature(body, {"Stripe-Signature": stripe_signature(body, "whsec_other")})

    def test_missing_header_or_secret_rejected(self, stripe_signature):
        body = json.dumps(self._session_event()).encode()

        assert not CardCheckoutProvider("whsec_test").verify_signature(body, {})
        assert not CardCheckoutProvider(None).verify_signature(
            body, {"Stripe-Signature": stripe_signature(body, "whsec_test")}
        )

    def test_extracts_order_ids_from_metadata(self):
        provider = CardCheckoutProvider("whsec_test")

        confirmation = provider.extract_confirmation(self._session_event(metadata={"orderIds": "a,b"}))

        assert confirmation.is_final_success is True
        assert confirmation.order_ids == ["a", "b"]
        assert confirmation.external_reference == "pi_1"

    def test_unpaid_session_is_not_final(self):
        provider = CardCheckoutProvider("whsec_test")

        confirmation = provider.extract_confirmation(
            self._session_event(payment_status="unpaid", metadata={"orderIds": "a"})
        )

        assert confirmation.is_final_success is False

    def test_other_events_are_not_final(self):
        provider = CardCheckoutProvider("whsec_test")

        assert provider.extract_confirmation({"type": "charge.refunded"}).is_final_success is False


class TestQrTransfer:
    """Bank QR adapter"""

    def test_signature(self):
        provider = QrTransferProvider(webhook_secret="qr-secret")
        body = b'{"event":"payment.completed","orderId":"QR-1"}'
        good = hmac.new(b"qr-secret", body, hashlib.sha256).hexdigest()

        assert provider.verify_signature(body, {"x-qr-signature": good})
        assert not provider.verify_signature(body, {"X-QR-Signature": "0" * 64})
        assert not provider.verify_signature(body, {})

    def test_extract(self):
        provider = QrTransferProvider()

        confirmation = provider.extract_confirmation(
            {"event": "payment.completed", "orderId": "QR-1", "transactionId": "BANK-9"}
        )

        assert confirmation.is_final_success is True
        assert confirmation.external_order_id == "QR-1"
        assert confirmation.external_reference == "BANK-9"
        assert provider.extract_confirmation({"event": "payment.pending", "orderId": "QR-1"}).is_final_success is False

    def test_check_status(self, app, monkeypatch):
        class FakeResponse:
            ok = True

            def json(self):
                return {"status": "PAID", "transactionId": "BANK-9"}

        calls = []

        def fake_get(url, headers=None, timeout=None):
            calls.append((url, headers, timeout))
            return FakeResponse()

        monkeypatch.setattr("vendorvault.payments.qr_transfer.requests.get", fake_get)

        class FakePayment:
            external_payment_id = "QR-1"

        result = get_provider("qr_transfer").check_status(FakePayment())

        assert result.confirmed is True
        assert result.reference == "BANK-9"
        assert calls[0][0] == "https://qr.test/orders/QR-1/status"
        assert calls[0][1] == {"Authorization": "Bearer qr-key"}
        assert calls[0][2] == 15


class TestCryptoInvoice:
    """Hosted crypto invoice adapter"""

    def _payload(self, **overrides):
        payload = {
            "uuid": "inv-uuid-1",
            "order_id": "VM-1-abcd",
            "status": "paid",
            "is_final": True,
            "additional_data": json.dumps({"orderIds": ["order-1"]}),
        }
        payload.update(overrides)
        payload["sign"] = sign_payload(payload, "crypto-key")
        return payload

    def test_signature_inside_body(self):
        provider = CryptoInvoiceProvider("crypto-key")

        assert provider.verify_signature(json.dumps(self._payload()).encode(), {})

    def test_tampered_body_rejected(self):
        provider = CryptoInvoiceProvider("crypto-key")
        payload = self._payload()
        payload["status"] = "paid_over"

        assert not provider.verify_signature(json.dumps(payload).encode(), {})

    def test_missing_sign_rejected(self):
        provider = CryptoInvoiceProvider("crypto-key")
        payload = self._payload()
        payload.pop("sign")

        assert not provider.verify_signature(json.dumps(payload).encode(), {})
        assert not provider.verify_signature(b"not json", {})

    def test_extract(self):
        provider = CryptoInvoiceProvider("crypto-key")

        confirmation = provider.extract_confirmation(self._payload())

        assert confirmation.is_final_success is True
        assert confirmation.order_ids == ["order-1"]
        assert confirmation.external_reference == "inv-uuid-1"

    @pytest.mark.parametrize("overrides", [{"is_final": False}, {"status": "check"}, {"status": "cancel"}])
    def test_not_final(self, overrides):
        provider = CryptoInvoiceProvider("crypto-key")

        assert provider.extract_confirmation(self._payload(**overrides)).is_final_success is False

    @pytest.mark.parametrize(
        "additional_data, expected",
        [
            (123, []),
            (["order-1"], []),
            ("not json", []),
            ({"orderIds": ["order-1"]}, ["order-1"]),
            (json.dumps({"orderIds": "order-1,order-2"}), ["order-1", "order-2"]),
        ],
    )
    def test_odd_metadata_never_raises(self, additional_data, expected):
        provider = CryptoInvoiceProvider("crypto-key")

        confirmation = provider.extract_confirmation(self._payload(additional_data=additional_data))

        assert confirmation.is_final_success is True
        assert confirmation.order_ids == expected


class TestPeerTransfer:
    """Peer-to-merchant transfer adapter"""

    def _headers(self, body, secret="peer-secret"):
        return {
            "BinancePay-Timestamp": "1700000000000",
            "BinancePay-Nonce": "abcdefghijklmnopqrstuvwxyz123456",
            "BinancePay-Signature": sign_body(secret, "1700000000000", "abcdefghijklmnopqrstuvwxyz123456", body),
        }

    def test_signature(self):
        provider = PeerTransferProvider("peer-secret")
        body = b'{"bizType":"PAY"}'

        assert provider.verify_signature(body, self._headers(body))
        assert not provider.verify_signature(body, self._headers(body, secret="other"))
        assert not provider.verify_signature(body + b" ", self._headers(body))

    def test_missing_headers_rejected(self):
        provider = PeerTransferProvider("peer-secret")
        headers = self._headers(b"{}")
        headers.pop("BinancePay-Nonce")

        assert not provider.verify_signature(b"{}", headers)

    def test_extract_with_string_data(self):
        provider = PeerTransferProvider("peer-secret")

        confirmation = provider.extract_confirmation(
            {
                "bizType": "PAY",
                "bizStatus": "PAY_SUCCESS",
                "data": json.dumps({"merchantTradeNo": "VM-1-abcd", "transactionId": "P2P-1"}),
            }
        )

        assert confirmation.is_final_success is True
        assert confirmation.external_order_id == "VM-1-abcd"
        assert confirmation.external_reference == "P2P-1"

    def test_closed_payment_is_not_final(self):
        provider = PeerTransferProvider("peer-secret")

        confirmation = provider.extract_confirmation(
            {"bizType": "PAY", "bizStatus": "PAY_CLOSED", "data": {"merchantTradeNo": "VM-1"}}
        )

        assert confirmation.is_final_success is False


class TestDirectDeposit:
    """Polled stablecoin deposits"""

    def test_never_accepts_webhooks(self):
        assert DirectDepositProvider(api_key="k", api_secret="s").verify_signature(b"{}", {}) is False

    def test_matches_memo_and_amount(self):
        deposit = {"addressTag": "vm-7kq2mz4c", "amount": "25.004", "status": 1, "txId": "0xabc"}

        assert DirectDepositProvider.matches(deposit, "VM-7KQ2MZ4C", Decimal("25.00"))
        assert not DirectDepositProvider.matches(deposit, "VM-OTHER", Decimal("25.00"))
        assert not DirectDepositProvider.matches(deposit, "VM-7KQ2MZ4C", Decimal("26.00"))
        assert not DirectDepositProvider.matches({**deposit, "status": 0}, "VM-7KQ2MZ4C", Decimal("25.00"))

    def test_check_status_finds_matching_deposit(self, app, monkeypatch):
        provider = get_provider("direct_deposit")
        monkeypatch.setattr(
            provider,
            "fetch_deposits",
            lambda coin: [
                {"addressTag": "VM-OTHER", "amount": "25.00", "status": 1, "txId": "0x1"},
                {"addressTag": "VM-7KQ2MZ4C", "amount": "25.00", "status": 6, "txId": "0x2"},
            ],
        )

        class FakePayment:
            external_payment_id = "VM-7KQ2MZ4C"
            amount = Decimal("25.00")
            payment_details = {"expected_amount": "25.00", "coin": "USDT"}

        result = provider.check_status(FakePayment())

        assert result.confirmed is True
        assert result.reference == "0x2"
        assert result.amount == Decimal("25.00")

    def test_unknown_provider(self, app):
        with pytest.raises(ValueError):
            get_provider("paypal")
