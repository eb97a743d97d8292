from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import UserRole
from vendorvault.schemas import CheckoutSchema, CheckoutStatusSchema
from vendorvault.services.checkout_service import CheckoutService
from vendorvault.services.payment_service import PaymentService
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import validate_schema

checkout_bp = Blueprint("checkout", __name__)


@checkout_bp.route("", methods=["POST"])
@jwt_required()
@role_required(UserRole.BUYER)
@validate_schema(CheckoutSchema)
def checkout(current_user):
    """Create one order per seller and return payment instructions"""
    try:
        data = request.validated_data
        result = CheckoutService.create_orders(
            buyer_id=current_user.id,
            items_data=data["items"],
            payment_method=data["payment_method"],
        )
        return (
            jsonify(
                {
                    "message": "Orders created",
                    "orders": [o.to_dict() for o in result["orders"]],
                    "total": float(result["total"]),
                    "payment": result["payment"],
                    "results": result["results"],
                }
            ),
            201,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), getattr(e, "status_code", 400)


@checkout_bp.route("/status", methods=["POST"])
@jwt_required()
@role_required(UserRole.BUYER)
@validate_schema(CheckoutStatusSchema)
def checkout_status(current_user):
    """Poll payment state, re-verifying with pollable providers"""
    result = PaymentService.poll_status(request.validated_data["order_ids"], current_user.id)
    return jsonify(result), 200
