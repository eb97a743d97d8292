from vendorvault.models.base import BaseModel
from vendorvault.extensions import db
from vendorvault.enums import DepositStatus, WithdrawalMethod, WithdrawalStatus


class WithdrawalRequest(BaseModel):
    """Seller payout. The amount leaves available_balance when the request is made."""

    __tablename__ = "withdrawal_requests"

    seller_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    method = db.Column(db.Enum(WithdrawalMethod, name="withdrawal_methods"), nullable=False)
    account_info = db.Column(db.JSON, default=dict)
    status = db.Column(
        db.Enum(WithdrawalStatus, name="withdrawal_statuses"),
        default=WithdrawalStatus.PENDING,
        nullable=False,
    )
    reviewed_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    review_note = db.Column(db.Text)
    completed_at = db.Column(db.DateTime, nullable=True)


class WalletDeposit(BaseModel):
    """Buyer top-up sent to the platform deposit address with a memo code"""

    __tablename__ = "wallet_deposits"

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    memo_code = db.Column(db.String(20), unique=True, nullable=False)
    coin = db.Column(db.String(20), nullable=False)
    network = db.Column(db.String(20))
    address = db.Column(db.String(255))
    status = db.Column(
        db.Enum(DepositStatus, name="deposit_statuses"), default=DepositStatus.PENDING, nullable=False
    )
    expires_at = db.Column(db.DateTime, nullable=False)
    tx_id = db.Column(db.String(255), unique=True, nullable=True)
    credited_amount = db.Column(db.Numeric(15, 2), nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    # Same shape the deposit poller reads off a Payment
    @property
    def external_payment_id(self):
        return self.memo_code

    @property
    def payment_details(self):
        return {"expected_amount": str(self.amount), "coin": self.coin}

    def to_instructions(self):
        return {
            "id": self.id,
            "memo_code": self.memo_code,
            "amount": float(self.amount),
            "coin": self.coin,
            "network": self.network,
            "address": self.address,
            "expires_at": self.expires_at.isoformat(),
        }
