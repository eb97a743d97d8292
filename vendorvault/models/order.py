from vendorvault.models.base import BaseModel
from vendorvault.extensions import db
from vendorvault.enums import OrderStatus, PaymentStatus, ProductType


class Order(BaseModel):
    __tablename__ = "orders"

    order_number = db.Column(db.String(50), unique=True, nullable=False, index=True)
    buyer_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False, index=True
    )
    seller_id = db.Column(
        db.String(36), db.ForeignKey("users.id"), nullable=False, index=True
    )
    subtotal = db.Column(db.Numeric(15, 2), nullable=False)
    total_amount = db.Column(db.Numeric(15, 2), nullable=False)
    # Snapshot of the seller's rate when the order was placed
    commission_rate = db.Column(db.Numeric(5, 2), nullable=False)
    commission_amount = db.Column(db.Numeric(15, 2), nullable=False)
    seller_earnings = db.Column(db.Numeric(15, 2), nullable=False)
    refunded_amount = db.Column(db.Numeric(15, 2), nullable=True)
    payment_method = db.Column(db.String(30), nullable=False)
    status = db.Column(
        db.Enum(OrderStatus, name="order_statuses"), default=OrderStatus.PENDING, nullable=False
    )
    payment_status = db.Column(
        db.Enum(PaymentStatus, name="payment_statuses"), default=PaymentStatus.PENDING, nullable=False
    )

    # Risk gate
    risk_score = db.Column(db.Integer, default=0, nullable=False)
    risk_reasons = db.Column(db.JSON, default=list)
    is_high_value = db.Column(db.Boolean, default=False, nullable=False)
    requires_manual_review = db.Column(db.Boolean, default=False, nullable=False)
    delivery_scheduled_at = db.Column(db.DateTime, nullable=True, index=True)

    completed_at = db.Column(db.DateTime, nullable=True)
    fulfilled_by = db.Column(db.String(36), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    reviewed_by = db.Column(db.String(36), nullable=True)

    # Relationships
    items = db.relationship(
        "OrderItem", backref="order", lazy="select", cascade="all, delete-orphan"
    )
    payment = db.relationship("Payment", backref="order", uselist=False)
    buyer = db.relationship("User", foreign_keys=[buyer_id])

    @property
    def is_terminal(self) -> bool:
        return self.status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED)

    def to_dict(self, include_items=False):
        data = super().to_dict()
        data["payment_provider"] = self.payment.provider if self.payment else None
        if include_items:
            # Codes stay hidden while the order is held for review
            reveal = self.status == OrderStatus.COMPLETED
            data["items"] = [item.to_dict(include_delivery=reveal) for item in self.items]
        return data


class OrderItem(BaseModel):
    __tablename__ = "order_items"

    order_id = db.Column(
        db.String(36),
        db.ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(
        db.String(36),
        db.ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    product_name = db.Column(db.String(255), nullable=False)
    product_type = db.Column(db.Enum(ProductType, name="product_types"), nullable=False)
    unit_price = db.Column(db.Numeric(15, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total_price = db.Column(db.Numeric(15, 2), nullable=False)
    is_delivered = db.Column(db.Boolean, default=False, nullable=False)
    delivered_at = db.Column(db.DateTime, nullable=True)

    product = db.relationship("Product")
    gift_card_codes = db.relationship("GiftCardCode", backref="order_item", lazy="select")
    streaming_profiles = db.relationship("StreamingProfile", backref="order_item", lazy="select")

    def to_dict(self, include_delivery=False):
        data = super().to_dict()
        if include_delivery and self.is_delivered:
            data["codes"] = [code.to_delivery_dict() for code in self.gift_card_codes]
            data["profiles"] = [p.to_delivery_dict() for p in self.streaming_profiles]
        return data
