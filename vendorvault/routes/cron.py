from flask import Blueprint, jsonify
from vendorvault.services.payment_service import PaymentService
from vendorvault.services.scheduler_service import DeliveryScheduler
from vendorvault.utils.decorators import cron_secret_required

cron_bp = Blueprint("cron", __name__)


@cron_bp.route("/process-delayed", methods=["GET", "POST"])
@cron_secret_required
def process_delayed():
    """Release delayed orders whose time has come and expire stale payments"""
    result = DeliveryScheduler.process_delayed()
    result["expired"] = PaymentService.expire_stale_payments()
    return jsonify(result), 200
