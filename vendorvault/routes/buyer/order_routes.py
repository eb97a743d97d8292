from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import OrderStatus, UserRole
from vendorvault.schemas import RefundRequestSchema
from vendorvault.services.order_service import OrderService
from vendorvault.services.refund_service import RefundService
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import parse_enum_arg, validate_schema, validate_pagination

order_bp = Blueprint("orders", __name__)


@order_bp.route("", methods=["GET"])
@jwt_required()
@role_required(UserRole.BUYER)
def get_orders(current_user):
    """Get buyer orders"""
    status = parse_enum_arg("status", OrderStatus)
    page, per_page = validate_pagination()

    pagination = OrderService.get_orders(
        user_id=current_user.id,
        role=UserRole.BUYER,
        status=status,
        page=page,
        per_page=per_page,
    )

    return (
        jsonify(
            {
                "orders": [o.to_dict() for o in pagination.items],
                "total": pagination.total,
                "page": page,
                "pages": pagination.pages,
            }
        ),
        200,
    )


@order_bp.route("/<order_id>", methods=["GET"])
@jwt_required()
@role_required(UserRole.BUYER)
def get_order(order_id, current_user):
    """Get order detail. Codes are withheld while the order is under review."""
    order = OrderService.get_order_by_id(order_id, current_user.id, UserRole.BUYER)
    return jsonify({"order": order.to_dict(include_items=True)}), 200


@order_bp.route("/<order_id>/refund", methods=["POST"])
@jwt_required()
@role_required(UserRole.BUYER)
@validate_schema(RefundRequestSchema)
def request_refund(order_id, current_user):
    """Prorated refund of streaming items to the wallet"""
    refund = RefundService.process_refund(
        order_id, current_user.id, reason=request.validated_data.get("reason")
    )
    return (
        jsonify({"message": "Refund processed", "refund": refund.to_dict()}),
        200,
    )
