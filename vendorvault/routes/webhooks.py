import logging

from flask import Blueprint, request, jsonify
from vendorvault.exceptions import PaymentVerificationError
from vendorvault.services.payment_service import FAILED, PaymentService
from vendorvault.services.provisioning_service import ProvisioningService, SIGNATURE_HEADER
from vendorvault.utils.kafka_utils import dispatch_provisioning_event

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__)


@webhooks_bp.route("/supplier", methods=["POST"])
def supplier_callback():
    """Async code delivery from the third-party supplier"""
    raw_body = request.get_data()
    if not ProvisioningService.verify_callback_signature(raw_body, request.headers.get(SIGNATURE_HEADER, "")):
        logger.warning("Rejected supplier callback: invalid signature")
        return jsonify({"error": "Invalid signature"}), 400

    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Malformed payload"}), 400

    event = ProvisioningService.build_event(payload)
    if not event["external_order_id"]:
        return jsonify({"status": "ignored"}), 200

    handled = dispatch_provisioning_event(event)
    return jsonify({"status": "ok" if handled else "ignored"}), 200


@webhooks_bp.route("/<provider>", methods=["POST"])
def payment_webhook(provider):
    """Payment confirmations. Verified before anything else is read."""
    try:
        result = PaymentService.handle_webhook(provider, request.get_data(), request.headers)
    except PaymentVerificationError as e:
        return jsonify({"error": str(e)}), 400

    # Ask the provider to retry when any order could not be fulfilled
    if FAILED in (result.get("results") or {}).values():
        return jsonify(result), 500
    return jsonify(result), 200
