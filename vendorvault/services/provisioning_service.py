from datetime import datetime
import hashlib
import hmac
import logging

from flask import current_app
import requests

from vendorvault.enums import CodeStatus, NotificationType, ProvisioningStatus
from vendorvault.exceptions import ProviderError
from vendorvault.extensions import db
from vendorvault.models.inventory import GiftCardCode, ProvisioningOrder
from vendorvault.models.order import Order, OrderItem
from vendorvault.services.inventory_service import InventoryService
from vendorvault.services.notification_service import NotificationService
from vendorvault.utils.crypto import encrypt
from vendorvault.utils.helpers import utcnow

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Supplier-Signature"


class SupplierClient:
    """Third-party code supplier API"""

    def __init__(self, api_url: str, api_key: str, timeout: int = 15):
        self.api_url = api_url
        self.api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_config(cls):
        config = current_app.config
        return cls(
            config.get("SUPPLIER_API_URL"),
            config.get("SUPPLIER_API_KEY"),
            config.get("PROVIDER_TIMEOUT_SECONDS", 15),
        )

    def create_order(self, supplier_product_id: str, reference: str) -> dict:
        if not self.api_url or not self.api_key:
            raise ProviderError("Supplier API is not configured")

        try:
            response = requests.post(
                f"{self.api_url}/orders",
                json={"product_id": supplier_product_id, "quantity": 1, "reference": reference},
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise ProviderError(f"Supplier request failed: {e}") from e

        if not response.ok:
            raise ProviderError(data.get("message") or f"Supplier returned {response.status_code}")

        return {
            "order_id": data.get("id") or data.get("order_id"),
            "status": data.get("status") or "completed",
            "code": data.get("code"),
        }


class ProvisioningService:
    @staticmethod
    def supplier_reference(item: OrderItem, unit: int) -> str:
        return f"{item.id}:{unit}"

    @staticmethod
    def provision(order: Order, item: OrderItem, unit: int, now: datetime) -> bool:
        """
        Buy one unit from the supplier inside the fulfillment transaction.
        Returns True when the code came back synchronously and was delivered.

        The purchase cannot be rolled back with the transaction, so the
        supplier reference is derived from the item and unit number. A retry
        after a rollback sends the same reference and the supplier returns the
        order it already has instead of placing a new one.
        """
        provisioning = ProvisioningOrder(
            order_id=order.id,
            order_item_id=item.id,
            buyer_id=order.buyer_id,
            supplier_product_id=item.product.supplier_product_id,
            reference=ProvisioningService.supplier_reference(item, unit),
        )
        db.session.add(provisioning)
        db.session.flush()

        result = SupplierClient.from_config().create_order(
            provisioning.supplier_product_id, provisioning.reference
        )
        provisioning.external_order_id = result["order_id"]

        if result["status"] == "completed" and result["code"]:
            return ProvisioningService.deliver_code(provisioning.id, result["code"], now)

        logger.info(
            f"Supplier order {provisioning.external_order_id} pending for item {item.id}, "
            "waiting for callback"
        )
        return False

    @staticmethod
    def deliver_code(provisioning_id: str, code: str, now: datetime) -> bool:
        """
        Store a supplier code against its order item. Shared by the synchronous
        path and the callback consumer. Does not commit.
        """
        rows = (
            db.session.query(ProvisioningOrder)
            .filter(
                ProvisioningOrder.id == provisioning_id,
                ProvisioningOrder.status == ProvisioningStatus.PENDING,
            )
            .update(
                {
                    ProvisioningOrder.status: ProvisioningStatus.COMPLETED,
                    ProvisioningOrder.completed_at: now,
                },
                synchronize_session=False,
            )
        )
        if rows != 1:
            logger.info(f"Provisioning order {provisioning_id} already settled")
            return False

        provisioning = db.session.get(ProvisioningOrder, provisioning_id, populate_existing=True)
        item = db.session.get(OrderItem, provisioning.order_item_id)

        db.session.add(
            GiftCardCode(
                product_id=item.product_id,
                code_encrypted=encrypt(code),
                status=CodeStatus.SOLD,
                sold_at=now,
                buyer_id=provisioning.buyer_id,
                order_item_id=item.id,
            )
        )

        completed = ProvisioningOrder.query.filter_by(
            order_item_id=item.id, status=ProvisioningStatus.COMPLETED
        ).count()
        if completed >= item.quantity:
            InventoryService.mark_item_delivered(item.id, now)

        return True

    @staticmethod
    def verify_callback_signature(raw_body: bytes, signature: str) -> bool:
        secret = current_app.config.get("SUPPLIER_WEBHOOK_SECRET")
        if not secret or not signature:
            return False
        expected = hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature)

    @staticmethod
    def build_event(payload: dict) -> dict:
        return {
            "external_order_id": payload.get("order_id"),
            "status": payload.get("status"),
            "code": payload.get("code"),
            "error": payload.get("error"),
        }

    @staticmethod
    def handle_event(event: dict) -> bool:
        """Apply a supplier callback. Safe to receive more than once."""
        external_order_id = event.get("external_order_id")
        if not external_order_id:
            return False

        provisioning = ProvisioningOrder.query.filter_by(external_order_id=external_order_id).first()
        if not provisioning:
            logger.warning(f"Supplier order {external_order_id} not found")
            return False

        now = utcnow()
        try:
            if event.get("status") == "completed" and event.get("code"):
                delivered = ProvisioningService.deliver_code(provisioning.id, event["code"], now)
            elif event.get("status") == "failed":
                db.session.query(ProvisioningOrder).filter(
                    ProvisioningOrder.id == provisioning.id,
                    ProvisioningOrder.status == ProvisioningStatus.PENDING,
                ).update(
                    {
                        ProvisioningOrder.status: ProvisioningStatus.FAILED,
                        ProvisioningOrder.error_message: event.get("error"),
                    },
                    synchronize_session=False,
                )
                delivered = False
                logger.warning(f"Supplier order {external_order_id} failed: {event.get('error')}")
            else:
                return False

            db.session.commit()

        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to apply supplier event {external_order_id}: {e}", exc_info=True)
            raise

        if delivered:
            NotificationService.notify(
                provisioning.buyer_id,
                NotificationType.CODE_DELIVERED,
                "Code delivered",
                "Your digital code has been delivered. Check your order for details.",
                f"/buyer/orders/{provisioning.order_id}",
            )
        return True
