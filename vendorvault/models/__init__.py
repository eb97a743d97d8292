from .user import User, SellerProfile
from .wallet import Wallet, WalletTransaction
from .product import Product
from .order import Order, OrderItem
from .payment import Payment
from .inventory import GiftCardCode, StreamingAccount, StreamingProfile, ProvisioningOrder
from .refund import RefundRequest
from .accounting import CommissionEntry, AuditLog
from .notification import Notification
from .settings import PlatformSettings
from .withdrawal import WithdrawalRequest, WalletDeposit

__all__ = [
    "User",
    "SellerProfile",
    "Wallet",
    "WalletTransaction",
    "Product",
    "Order",
    "OrderItem",
    "Payment",
    "GiftCardCode",
    "StreamingAccount",
    "StreamingProfile",
    "ProvisioningOrder",
    "RefundRequest",
    "CommissionEntry",
    "AuditLog",
    "Notification",
    "PlatformSettings",
    "WithdrawalRequest",
    "WalletDeposit",
]
