from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import UserRole
from vendorvault.schemas import AdminConfirmSchema
from vendorvault.services.payment_service import PaymentService
from vendorvault.services.scheduler_service import DeliveryScheduler
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import validate_schema

order_admin_bp = Blueprint("orders", __name__)


@order_admin_bp.route("/orders/<order_id>/confirm", methods=["POST"])
@jwt_required()
@role_required(UserRole.ADMIN)
@validate_schema(AdminConfirmSchema)
def confirm_order(order_id, current_user):
    """Manually confirm a payment the provider never reported"""
    result = PaymentService.admin_confirm(
        order_id, current_user.id, request.validated_data.get("reference")
    )
    status_code = 410 if result["result"] == "expired" else 200
    return jsonify(result), status_code


@order_admin_bp.route("/process-delayed", methods=["POST"])
@jwt_required()
@role_required(UserRole.ADMIN)
def process_delayed(current_user):
    """Run the delayed-delivery sweep now"""
    result = DeliveryScheduler.process_delayed()
    result["expired"] = PaymentService.expire_stale_payments()
    return jsonify(result), 200
