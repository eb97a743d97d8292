from vendorvault.models.base import BaseModel, SoftDeleteMixin
from vendorvault.extensions import db
from vendorvault.enums import ProductType


class Product(BaseModel, SoftDeleteMixin):
    __tablename__ = "products"

    seller_id = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(255), nullable=False, index=True)
    product_type = db.Column(db.Enum(ProductType, name="product_types"), nullable=False)
    price = db.Column(db.Numeric(15, 2), nullable=False)
    # Subscription length for streaming goods, used by prorated refunds
    duration_days = db.Column(db.Integer, nullable=True)
    # Set when codes come from the third-party supplier instead of local stock
    supplier_product_id = db.Column(db.String(100), nullable=True)
    sold_count = db.Column(db.Integer, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True)

    seller = db.relationship("User", foreign_keys=[seller_id])

    @property
    def is_externally_provisioned(self) -> bool:
        return bool(self.supplier_product_id)
