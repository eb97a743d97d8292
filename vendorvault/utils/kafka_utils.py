import logging

from flask import current_app

from vendorvault.services.event_producer import (
    NOTIFICATION_TOPIC,
    PROVISIONING_TOPIC,
    get_event_producer,
)

logger = logging.getLogger(__name__)


def kafka_enabled() -> bool:
    return bool(current_app.config.get("KAFKA_ENABLED"))


def _producer():
    return get_event_producer(current_app.config["KAFKA_BOOTSTRAP_SERVERS"])


def dispatch_provisioning_event(event: dict) -> bool:
    """
    Hand a supplier callback to the provisioning consumer. Without Kafka the
    event is handled inline through the same code path the worker uses.
    """
    if not kafka_enabled():
        from vendorvault.services.provisioning_service import ProvisioningService

        return ProvisioningService.handle_event(event)

    success = _producer().publish(PROVISIONING_TOPIC, key=event.get("external_order_id"), payload=event)
    if not success:
        logger.error(
            f"Failed to publish provisioning event for {event.get('external_order_id')}. "
            "Supplier will need to resend the callback."
        )
    return success


def publish_notification_event(notification) -> bool:
    if not kafka_enabled():
        return False

    try:
        return _producer().publish(
            NOTIFICATION_TOPIC,
            key=notification.user_id,
            payload={
                "notification_id": notification.id,
                "user_id": notification.user_id,
                "type": notification.type.value,
                "title": notification.title,
                "link": notification.link,
            },
        )
    except Exception as e:
        logger.error(f"Failed to publish notification {notification.id}: {e}", exc_info=True)
        return False
