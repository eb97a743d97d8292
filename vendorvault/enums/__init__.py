from enum import Enum


class UserRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    UNDER_REVIEW = "under_review"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CARD_CHECKOUT = "card_checkout"
    QR_TRANSFER = "qr_transfer"
    CRYPTO_INVOICE = "crypto_invoice"
    PEER_TRANSFER = "peer_transfer"
    DIRECT_DEPOSIT = "direct_deposit"
    WALLET = "wallet"


class ProductType(str, Enum):
    GIFT_CARD = "gift_card"
    STREAMING = "streaming"
    TOP_UP = "top_up"


class CodeStatus(str, Enum):
    AVAILABLE = "available"
    SOLD = "sold"
    RESERVED = "reserved"
    EXPIRED = "expired"


class AccountStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"


class ProfileStatus(str, Enum):
    SOLD = "sold"
    EXPIRED = "expired"


class ProvisioningStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TransactionType(str, Enum):
    DEPOSIT_CREDIT = "deposit_credit"
    REFUND_CREDIT = "refund_credit"
    PURCHASE_DEBIT = "purchase_debit"
    ADJUSTMENT = "adjustment"


class RefundStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSED = "processed"


class RefundType(str, Enum):
    FULL = "full"
    PARTIAL_PRORATED = "partial_prorated"


class NotificationType(str, Enum):
    ORDER_COMPLETED = "order_completed"
    ORDER_UNDER_REVIEW = "order_under_review"
    ORDER_CANCELLED = "order_cancelled"
    NEW_SALE = "new_sale"
    CODE_DELIVERED = "code_delivered"
    REFUND_PROCESSED = "refund_processed"
    WALLET_CREDITED = "wallet_credited"
    WITHDRAWAL_APPROVED = "withdrawal_approved"
    WITHDRAWAL_REJECTED = "withdrawal_rejected"


class WithdrawalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class WithdrawalMethod(str, Enum):
    BANK_TRANSFER = "bank_transfer"
    PEER_TRANSFER = "peer_transfer"
    QR_TRANSFER = "qr_transfer"


class DepositStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
