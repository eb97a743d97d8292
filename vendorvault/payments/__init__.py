from flask import current_app

from vendorvault.enums import PaymentMethod
from vendorvault.payments.base import Confirmation, PaymentProvider, PollResult
from vendorvault.payments.card_checkout import CardCheckoutProvider
from vendorvault.payments.crypto_invoice import CryptoInvoiceProvider
from vendorvault.payments.direct_deposit import DirectDepositProvider
from vendorvault.payments.peer_transfer import PeerTransferProvider
from vendorvault.payments.qr_transfer import QrTransferProvider

WEBHOOK_PROVIDERS = (
    PaymentMethod.CARD_CHECKOUT.value,
    PaymentMethod.QR_TRANSFER.value,
    PaymentMethod.CRYPTO_INVOICE.value,
    PaymentMethod.PEER_TRANSFER.value,
)


def get_provider(name: str) -> PaymentProvider:
    """Build the adapter for a provider tag from the app config"""
    config = current_app.config
    timeout = config.get("PROVIDER_TIMEOUT_SECONDS", 15)

    if name == PaymentMethod.CARD_CHECKOUT.value:
        return CardCheckoutProvider(config.get("STRIPE_WEBHOOK_SECRET"))
    if name == PaymentMethod.QR_TRANSFER.value:
        return QrTransferProvider(
            webhook_secret=config.get("QR_WEBHOOK_SECRET"),
            api_url=config.get("QR_API_URL"),
            api_key=config.get("QR_API_KEY"),
            timeout=timeout,
        )
    if name == PaymentMethod.CRYPTO_INVOICE.value:
        return CryptoInvoiceProvider(config.get("CRYPTO_INVOICE_API_KEY"))
    if name == PaymentMethod.PEER_TRANSFER.value:
        return PeerTransferProvider(config.get("PEER_TRANSFER_SECRET"))
    if name == PaymentMethod.DIRECT_DEPOSIT.value:
        return DirectDepositProvider(
            api_url=config.get("DEPOSIT_API_URL"),
            api_key=config.get("DEPOSIT_API_KEY"),
            api_secret=config.get("DEPOSIT_API_SECRET"),
            coin=config.get("DEPOSIT_COIN", "USDT"),
            timeout=timeout,
        )
    raise ValueError(f"Unknown payment provider: {name}")


__all__ = [
    "Confirmation",
    "PaymentProvider",
    "PollResult",
    "WEBHOOK_PROVIDERS",
    "get_provider",
]
