from vendorvault.models.base import BaseModel
from vendorvault.extensions import db


class CommissionEntry(BaseModel):
    """Platform commission posted by fulfillment. One per order."""

    __tablename__ = "commission_entries"

    order_id = db.Column(
        db.String(36), db.ForeignKey("orders.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    seller_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    rate = db.Column(db.Numeric(5, 2), nullable=False)
    amount = db.Column(db.Numeric(15, 2), nullable=False)
    reversed_at = db.Column(db.DateTime, nullable=True)


class AuditLog(BaseModel):
    __tablename__ = "audit_logs"

    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    action = db.Column(db.String(100), nullable=False)
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(36), nullable=False, index=True)
    details = db.Column(db.JSON, default=dict)
