from vendorvault.models.base import BaseModel, SoftDeleteMixin
from vendorvault.extensions import db
from vendorvault.enums import UserRole
from decimal import Decimal
import bcrypt


class User(BaseModel, SoftDeleteMixin):
    __tablename__ = "users"

    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    full_name = db.Column(db.String(255))
    role = db.Column(db.Enum(UserRole, name="user_roles"), nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    wallet = db.relationship(
        "Wallet", backref="user", uselist=False, cascade="all, delete-orphan"
    )
    seller_profile = db.relationship(
        "SellerProfile", backref="user", uselist=False, cascade="all, delete-orphan"
    )

    def set_password(self, password: str):
        self.password_hash = bcrypt.hashpw(
            password.encode("utf-8"), bcrypt.gensalt()
        ).decode("utf-8")

    def check_password(self, password: str) -> bool:
        return bcrypt.checkpw(
            password.encode("utf-8"), self.password_hash.encode("utf-8")
        )

    def to_dict(self):
        data = super().to_dict()
        data.pop("password_hash", None)
        data.pop("deleted_at", None)
        return data


class SellerProfile(BaseModel):
    """Seller storefront and earnings balance"""

    __tablename__ = "seller_profiles"

    user_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    store_name = db.Column(db.String(255), nullable=False)
    commission_rate = db.Column(db.Numeric(5, 2), default=Decimal("10.00"), nullable=False)
    available_balance = db.Column(db.Numeric(15, 2), default=Decimal("0.00"), nullable=False)
    total_earnings = db.Column(db.Numeric(15, 2), default=Decimal("0.00"), nullable=False)
    total_sales = db.Column(db.Integer, default=0, nullable=False)
