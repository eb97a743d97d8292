from vendorvault.extensions import db
from vendorvault.utils.helpers import utcnow


class PlatformSettings(db.Model):
    """Single admin-editable row holding the risk thresholds"""

    __tablename__ = "platform_settings"

    DEFAULT_ID = "default"

    id = db.Column(db.String(36), primary_key=True, default=DEFAULT_ID)
    high_value_threshold = db.Column(db.Numeric(15, 2), nullable=False)
    require_manual_review_above = db.Column(db.Numeric(15, 2), nullable=False)
    delivery_delay_minutes = db.Column(db.Integer, default=0, nullable=False)
    # Bumped on every save; processes compare it to their cached snapshot
    version = db.Column(db.Integer, default=1, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)
