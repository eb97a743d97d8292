from kafka import KafkaProducer
import json
import logging
from typing import Dict, Any, Optional

from vendorvault.utils.helpers import utcnow

logger = logging.getLogger(__name__)

PROVISIONING_TOPIC = "provisioning-events"
NOTIFICATION_TOPIC = "notification-events"


class EventProducer:
    def __init__(self, bootstrap_servers: str):
        self.producer = KafkaProducer(
            bootstrap_servers=bootstrap_servers,
            value_serializer=lambda v: json.dumps(v).encode('utf-8'),
            key_serializer=lambda k: k.encode('utf-8') if k else None,
            acks='all',  # Wait for all replicas
            retries=3,
            max_in_flight_requests_per_connection=1,  # Ensure ordering
            linger_ms=10,
        )
        self.bootstrap_servers = bootstrap_servers
        logger.info(f"Kafka Producer initialized: {bootstrap_servers}")

    def publish(self, topic: str, key: str, payload: Dict[str, Any]) -> bool:
        """
        Publish one event and wait for the broker ack.

        Args:
            topic: Destination topic
            key: Partition key, events for the same order share a partition
            payload: JSON-serializable event body
        """
        message = dict(payload)
        message.setdefault("timestamp", utcnow().isoformat())

        try:
            future = self.producer.send(topic, key=key, value=message)
            record_metadata = future.get(timeout=10)

            logger.info(
                f"Published to {topic}: key={key}, "
                f"partition={record_metadata.partition}, offset={record_metadata.offset}"
            )
            return True

        except Exception as e:
            logger.error(f"Failed to publish to {topic}: {e}", exc_info=True)
            return False

    def flush(self):
        self.producer.flush()

    def close(self):
        self.producer.flush()
        self.producer.close()
        logger.info("Kafka Producer closed")


# Singleton instance
_producer_instance: Optional[EventProducer] = None


def get_event_producer(bootstrap_servers: str) -> EventProducer:
    """Get or create singleton Kafka producer instance"""
    global _producer_instance
    if _producer_instance is None:
        _producer_instance = EventProducer(bootstrap_servers)
    return _producer_instance
