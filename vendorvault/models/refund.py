from vendorvault.models.base import BaseModel
from vendorvault.extensions import db
from vendorvault.enums import RefundStatus, RefundType


class RefundRequest(BaseModel):
    __tablename__ = "refund_requests"

    order_id = db.Column(
        db.String(36), db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    buyer_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    refund_type = db.Column(db.Enum(RefundType, name="refund_types"), nullable=False)
    original_amount = db.Column(db.Numeric(15, 2), nullable=False)
    refund_amount = db.Column(db.Numeric(15, 2), nullable=False)
    reason = db.Column(db.Text)
    status = db.Column(
        db.Enum(RefundStatus, name="refund_statuses"), default=RefundStatus.PENDING, nullable=False
    )
    total_days = db.Column(db.Integer)
    used_days = db.Column(db.Integer)
    remaining_days = db.Column(db.Integer)
    processed_at = db.Column(db.DateTime, nullable=True)
