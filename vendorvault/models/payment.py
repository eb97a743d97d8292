from vendorvault.models.base import BaseModel
from vendorvault.extensions import db
from vendorvault.enums import PaymentStatus


class Payment(BaseModel):
    """Provider-side state for one order. Orders paid together share an external id."""

    __tablename__ = "payments"

    order_id = db.Column(
        db.String(36), db.ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    # Tag that selects the confirmation adapter
    provider = db.Column(db.String(30), nullable=False, index=True)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    currency = db.Column(db.String(10), default="USD", nullable=False)
    status = db.Column(
        db.Enum(PaymentStatus, name="payment_statuses"), default=PaymentStatus.PENDING, nullable=False
    )
    external_payment_id = db.Column(db.String(255), nullable=True, index=True)
    transaction_reference = db.Column(db.String(255), nullable=True)
    payment_details = db.Column(db.JSON, default=dict)
    expires_at = db.Column(db.DateTime, nullable=True)
    # Set once the provider has confirmed funds, even if delivery is deferred
    confirmed_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    def is_expired(self, now) -> bool:
        return self.expires_at is not None and self.confirmed_at is None and now >= self.expires_at
