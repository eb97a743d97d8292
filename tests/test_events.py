import pytest
from types import SimpleNamespace
from vendorvault.enums import NotificationType
from vendorvault.services.event_producer import NOTIFICATION_TOPIC, PROVISIONING_TOPIC
from vendorvault.services.notification_service import NotificationService
from vendorvault.tasks.provisioning_worker import ProvisioningWorker
from vendorvault.utils import kafka_utils


class FakeProducer:
    def __init__(self):
        self.published = []

    def publish(self, topic, key, payload):
        self.published.append((topic, key, payload))
        return True


@pytest.fixture
def kafka_on(app, monkeypatch):
    producer = FakeProducer()
    app.config["KAFKA_ENABLED"] = True
    monkeypatch.setattr(kafka_utils, "get_event_producer", lambda servers: producer)
    return producer


class TestKafkaDispatch:
    """Event publishing when Kafka is enabled"""

    def test_supplier_event_is_published(self, kafka_on):
        event = {"external_order_id": "SUP-1", "status": "completed", "code": "X"}

        assert kafka_utils.dispatch_provisioning_event(event) is True
        assert kafka_on.published == [(PROVISIONING_TOPIC, "SUP-1", event)]

    def test_notification_is_published(self, kafka_on, buyer_user):
        notification = NotificationService.notify(
            buyer_user.id, NotificationType.WALLET_CREDITED, "Wallet credited", "$5 added"
        )

        topic, key, payload = kafka_on.published[0]
        assert topic == NOTIFICATION_TOPIC
        assert key == buyer_user.id
        assert payload["notification_id"] == notification.id
        assert payload["type"] == "wallet_credited"

    def test_inline_without_kafka(self, app):
        # Unknown supplier order: handled inline and ignored
        assert kafka_utils.dispatch_provisioning_event({"external_order_id": "SUP-404"}) is False


class TestProvisioningWorker:
    """Consumer message handling"""

    def test_process_message_applies_event(self, app, monkeypatch):
        handled = []
        monkeypatch.setattr(
            "vendorvault.tasks.provisioning_worker.ProvisioningService.handle_event",
            lambda event: handled.append(event) or True,
        )
        worker = ProvisioningWorker.__new__(ProvisioningWorker)
        worker.worker_id = 1

        message = SimpleNamespace(value={"external_order_id": "SUP-1", "status": "completed"}, offset=0)

        assert worker.process_message(message) is True
        assert handled == [message.value]

    def test_process_message_failure_is_not_committed(self, app, monkeypatch):
        def boom(event):
            raise RuntimeError("db down")

        monkeypatch.setattr("vendorvault.tasks.provisioning_worker.ProvisioningService.handle_event", boom)
        worker = ProvisioningWorker.__new__(ProvisioningWorker)
        worker.worker_id = 1

        message = SimpleNamespace(value={"external_order_id": "SUP-1"}, offset=7)

        assert worker.process_message(message) is False
