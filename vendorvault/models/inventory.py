from vendorvault.models.base import BaseModel
from vendorvault.extensions import db
from vendorvault.enums import CodeStatus, AccountStatus, ProfileStatus, ProvisioningStatus
from vendorvault.utils.crypto import decrypt


class GiftCardCode(BaseModel):
    """One redeemable code. Claimed by exactly one order item."""

    __tablename__ = "gift_card_codes"
    __table_args__ = (
        db.Index("ix_gift_card_codes_product_status", "product_id", "status"),
    )

    product_id = db.Column(
        db.String(36), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    code_encrypted = db.Column(db.Text, nullable=False)
    pin = db.Column(db.String(50))
    status = db.Column(
        db.Enum(CodeStatus, name="code_statuses"), default=CodeStatus.AVAILABLE, nullable=False
    )
    sold_at = db.Column(db.DateTime, nullable=True)
    buyer_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    order_item_id = db.Column(
        db.String(36), db.ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True, index=True
    )

    def to_delivery_dict(self):
        return {"id": self.id, "code": decrypt(self.code_encrypted), "pin": self.pin}


class StreamingAccount(BaseModel):
    """Shared streaming credential, sold one profile slot at a time"""

    __tablename__ = "streaming_accounts"

    product_id = db.Column(
        db.String(36), db.ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    email_encrypted = db.Column(db.Text, nullable=False)
    password_encrypted = db.Column(db.Text, nullable=False)
    max_profiles = db.Column(db.Integer, default=1, nullable=False)
    used_profiles = db.Column(db.Integer, default=0, nullable=False)
    status = db.Column(
        db.Enum(AccountStatus, name="account_statuses"), default=AccountStatus.ACTIVE, nullable=False
    )

    profiles = db.relationship("StreamingProfile", backref="account", lazy="dynamic")


class StreamingProfile(BaseModel):
    __tablename__ = "streaming_profiles"
    __table_args__ = (
        db.UniqueConstraint("account_id", "profile_number", name="uq_streaming_profile_slot"),
    )

    account_id = db.Column(
        db.String(36), db.ForeignKey("streaming_accounts.id", ondelete="CASCADE"), nullable=False
    )
    profile_number = db.Column(db.Integer, nullable=False)
    order_item_id = db.Column(
        db.String(36), db.ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True, index=True
    )
    buyer_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    status = db.Column(
        db.Enum(ProfileStatus, name="profile_statuses"), default=ProfileStatus.SOLD, nullable=False
    )
    sold_at = db.Column(db.DateTime, nullable=True)

    def to_delivery_dict(self):
        return {
            "id": self.id,
            "profile_number": self.profile_number,
            "email": decrypt(self.account.email_encrypted),
            "password": decrypt(self.account.password_encrypted),
            "status": self.status.value,
        }


class ProvisioningOrder(BaseModel):
    """A code purchase placed with the third-party supplier for one unit of an order item"""

    __tablename__ = "provisioning_orders"

    order_id = db.Column(db.String(36), db.ForeignKey("orders.id"), nullable=False, index=True)
    order_item_id = db.Column(db.String(36), db.ForeignKey("order_items.id"), nullable=False)
    buyer_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False)
    supplier_product_id = db.Column(db.String(100), nullable=False)
    # "<order_item_id>:<unit>", stable across retries so the supplier can deduplicate
    reference = db.Column(db.String(100), unique=True, nullable=False)
    external_order_id = db.Column(db.String(100), unique=True, nullable=True)
    status = db.Column(
        db.Enum(ProvisioningStatus, name="provisioning_statuses"),
        default=ProvisioningStatus.PENDING,
        nullable=False,
    )
    error_message = db.Column(db.Text)
    completed_at = db.Column(db.DateTime, nullable=True)
