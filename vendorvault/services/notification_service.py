import logging

from vendorvault.enums import NotificationType
from vendorvault.extensions import db
from vendorvault.models.notification import Notification
from vendorvault.utils.kafka_utils import publish_notification_event

logger = logging.getLogger(__name__)


class NotificationService:
    @staticmethod
    def notify(user_id: str, type: NotificationType, title: str, message: str, link: str = None):
        """
        Store an in-app notification. Never raises: callers have already
        committed their own work and a failed notification must not undo it.
        """
        try:
            notification = Notification(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                link=link,
            )
            db.session.add(notification)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to notify user {user_id} ({type.value}): {e}", exc_info=True)
            return None

        publish_notification_event(notification)
        return notification

    @staticmethod
    def get_notifications(user_id: str, unread_only: bool = False, page: int = 1, per_page: int = 20):
        query = Notification.query.filter_by(user_id=user_id)
        if unread_only:
            query = query.filter_by(is_read=False)
        return query.order_by(Notification.created_at.desc()).paginate(
            page=page, per_page=per_page, error_out=False
        )

    @staticmethod
    def mark_all_read(user_id: str) -> int:
        try:
            count = Notification.query.filter_by(user_id=user_id, is_read=False).update(
                {Notification.is_read: True}, synchronize_session=False
            )
            db.session.commit()
            return count
        except Exception:
            db.session.rollback()
            raise
