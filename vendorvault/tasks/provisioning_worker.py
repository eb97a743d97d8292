from kafka import KafkaConsumer
import json
import logging
import os
import signal

from vendorvault.extensions import db
from vendorvault.services.event_producer import PROVISIONING_TOPIC
from vendorvault.services.provisioning_service import ProvisioningService

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


CONSUMER_GROUP = "provisioning-workers"


class ProvisioningWorker:
    """Kafka consumer applying supplier callbacks to order items"""

    def __init__(self, bootstrap_servers: str, worker_id: int = 1):
        self.worker_id = worker_id
        self.running = True

        self.consumer = KafkaConsumer(
            PROVISIONING_TOPIC,
            bootstrap_servers=bootstrap_servers,
            group_id=CONSUMER_GROUP,
            value_deserializer=lambda m: json.loads(m.decode('utf-8')),
            key_deserializer=lambda k: k.decode('utf-8') if k else None,
            auto_offset_reset='earliest',
            enable_auto_commit=False,  # commit only after the event is applied
            max_poll_records=10,
            session_timeout_ms=30000,
            heartbeat_interval_ms=10000,
        )

        logger.info(f"ProvisioningWorker-{worker_id} initialized")

    def process_message(self, message) -> bool:
        try:
            event = message.value
            logger.info(
                f"[Worker-{self.worker_id}] Supplier event: "
                f"external_order={event.get('external_order_id')}, status={event.get('status')}"
            )
            ProvisioningService.handle_event(event)
            return True

        except Exception as e:
            logger.error(f"Error processing provisioning event: {e}", exc_info=True)
            db.session.rollback()
            return False

    def run(self):
        logger.info(f"ProvisioningWorker-{self.worker_id} started (PID={os.getpid()})")

        signal.signal(signal.SIGINT, self._shutdown)
        signal.signal(signal.SIGTERM, self._shutdown)

        try:
            while self.running:
                messages = self.consumer.poll(timeout_ms=1000)

                if not messages:
                    continue

                for topic_partition, records in messages.items():
                    for message in records:
                        if self.process_message(message):
                            self.consumer.commit()
                        else:
                            logger.warning(
                                f"Skipping commit for failed message at offset {message.offset}"
                            )

        except Exception as e:
            logger.error(f"Consumer loop error: {e}", exc_info=True)
        finally:
            self.cleanup()

    def _shutdown(self, signum, frame):
        logger.info(f"Received signal {signum}, shutting down worker-{self.worker_id}...")
        self.running = False

    def cleanup(self):
        logger.info(f"Cleaning up ProvisioningWorker-{self.worker_id}")
        self.consumer.close()
        logger.info(f"ProvisioningWorker-{self.worker_id} stopped")
