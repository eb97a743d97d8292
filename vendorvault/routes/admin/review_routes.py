from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import UserRole
from vendorvault.schemas import ReviewDecisionSchema
from vendorvault.services.review_service import ReviewService
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import validate_schema, validate_pagination

review_admin_bp = Blueprint("review_queue", __name__)

DECISION_LABELS = {"approve": "approved", "reject": "rejected"}


@review_admin_bp.route("", methods=["GET"])
@jwt_required()
@role_required(UserRole.ADMIN)
def get_queue(current_user):
    """Orders held for manual review"""
    page, per_page = validate_pagination()
    pagination = ReviewService.get_queue(page, per_page)

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


@review_admin_bp.route("/<order_id>", methods=["POST"])
@jwt_required()
@role_required(UserRole.ADMIN)
@validate_schema(ReviewDecisionSchema)
def decide(order_id, current_user):
    """Approve or reject a held order"""
    data = request.validated_data
    try:
        if data["action"] == "approve":
            order = ReviewService.approve(order_id, current_user.id)
        else:
            order = ReviewService.reject(order_id, current_user.id, data.get("reason"))
        return jsonify({"message": f"Order {DECISION_LABELS[data['action']]}", "order": order.to_dict()}), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), getattr(e, "status_code", 400)
