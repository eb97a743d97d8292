from vendorvault.models.base import BaseModel
from vendorvault.extensions import db
from decimal import Decimal
from vendorvault.enums import TransactionType


class Wallet(BaseModel):
    """Wallet model"""

    __tablename__ = "wallets"

    user_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    balance = db.Column(db.Numeric(15, 2), default=Decimal("0.00"), nullable=False)

    # Relationships
    transactions = db.relationship(
        "WalletTransaction",
        backref="wallet",
        lazy="dynamic",
        cascade="all, delete-orphan",
    )

    def can_deduct(self, amount: Decimal) -> bool:
        """Check if wallet has sufficient balance"""
        return self.balance >= amount


class WalletTransaction(BaseModel):
    """Append-only ledger row"""

    __tablename__ = "wallet_transactions"

    wallet_id = db.Column(
        db.String(36),
        db.ForeignKey("wallets.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    order_id = db.Column(
        db.String(36),
        db.ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    refund_id = db.Column(
        db.String(36),
        db.ForeignKey("refund_requests.id", ondelete="SET NULL"),
        nullable=True,
    )
    type = db.Column(db.Enum(TransactionType, name="transaction_types"), nullable=False)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    balance_before = db.Column(db.Numeric(15, 2), nullable=False)
    balance_after = db.Column(db.Numeric(15, 2), nullable=False)
    description = db.Column(db.Text)
