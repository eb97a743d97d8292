from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import UserRole, WithdrawalStatus
from vendorvault.schemas import WithdrawalDecisionSchema
from vendorvault.services.withdrawal_service import WithdrawalService
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import validate_schema, validate_pagination, parse_enum_arg

withdrawal_admin_bp = Blueprint("withdrawal_admin", __name__)


@withdrawal_admin_bp.route("", methods=["GET"])
@jwt_required()
@role_required(UserRole.ADMIN)
def get_withdrawals(current_user):
    """All payout requests, optionally ?status=pending, with per-status totals"""
    status = parse_enum_arg("status", WithdrawalStatus)
    page, per_page = validate_pagination(max_per_page=50)
    pagination = WithdrawalService.get_all(status, page, per_page)

    return (
        jsonify(
            {
                "withdrawals": [w.to_dict() for w in pagination.items],
                "stats": WithdrawalService.get_stats(),
                "total": pagination.total,
                "page": page,
                "pages": pagination.pages,
            }
        ),
        200,
    )


@withdrawal_admin_bp.route("/<withdrawal_id>", methods=["PATCH"])
@jwt_required()
@role_required(UserRole.ADMIN)
@validate_schema(WithdrawalDecisionSchema)
def decide(withdrawal_id, current_user):
    data = request.validated_data
    if data["action"] == "approve":
        withdrawal = WithdrawalService.approve(withdrawal_id, current_user.id, data.get("note"))
    elif data["action"] == "reject":
        withdrawal = WithdrawalService.reject(withdrawal_id, current_user.id, data.get("note"))
    else:
        withdrawal = WithdrawalService.complete(withdrawal_id, current_user.id)
    return jsonify({"withdrawal": withdrawal.to_dict()}), 200
