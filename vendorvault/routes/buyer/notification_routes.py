from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import UserRole
from vendorvault.services.notification_service import NotificationService
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import validate_pagination

notification_bp = Blueprint("notifications", __name__)


@notification_bp.route("", methods=["GET"])
@jwt_required()
@role_required(UserRole.BUYER, UserRole.SELLER)
def get_notifications(current_user):
    page, per_page = validate_pagination()
    unread_only = request.args.get("unread") == "true"
    pagination = NotificationService.get_notifications(current_user.id, unread_only, page, per_page)

    return (
        jsonify(
            {
                "notifications": [n.to_dict() for n in pagination.items],
                "total": pagination.total,
                "page": page,
                "pages": pagination.pages,
            }
        ),
        200,
    )


@notification_bp.route("/read", methods=["POST"])
@jwt_required()
@role_required(UserRole.BUYER, UserRole.SELLER)
def mark_read(current_user):
    count = NotificationService.mark_all_read(current_user.id)
    return jsonify({"updated": count}), 200
