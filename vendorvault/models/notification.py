from vendorvault.models.base import BaseModel
from vendorvault.extensions import db
from vendorvault.enums import NotificationType


class Notification(BaseModel):
    __tablename__ = "notifications"

    user_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = db.Column(db.Enum(NotificationType, name="notification_types"), nullable=False)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    link = db.Column(db.String(500))
    is_read = db.Column(db.Boolean, default=False, nullable=False)
