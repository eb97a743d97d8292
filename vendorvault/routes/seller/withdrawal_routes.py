from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import UserRole
from vendorvault.schemas import WithdrawalCreateSchema
from vendorvault.services.withdrawal_service import WithdrawalService
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import validate_schema, validate_pagination

withdrawal_bp = Blueprint("withdrawals", __name__)


@withdrawal_bp.route("", methods=["POST"])
@jwt_required()
@role_required(UserRole.SELLER)
@validate_schema(WithdrawalCreateSchema)
def create_withdrawal(current_user):
    """Request a payout. The amount is held from the available balance right away."""
    data = request.validated_data
    withdrawal = WithdrawalService.create(
        current_user.id, data["amount"], data["method"], data["account_info"]
    )
    return jsonify({"withdrawal": withdrawal.to_dict()}), 201


@withdrawal_bp.route("", methods=["GET"])
@jwt_required()
@role_required(UserRole.SELLER)
def get_withdrawals(current_user):
    page, per_page = validate_pagination(max_per_page=50)
    pagination = WithdrawalService.get_for_seller(current_user.id, page, per_page)

    return (
        jsonify(
            {
                "withdrawals": [w.to_dict() for w in pagination.items],
                "available_balance": float(current_user.seller_profile.available_balance),
                "total": pagination.total,
                "page": page,
                "pages": pagination.pages,
            }
        ),
        200,
    )
