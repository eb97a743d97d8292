from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import UserRole
from vendorvault.schemas import DepositCreateSchema
from vendorvault.services.deposit_service import DepositService
from vendorvault.services.wallet_service import WalletService
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import validate_schema, validate_pagination

wallet_bp = Blueprint("wallet", __name__)


@wallet_bp.route("", methods=["GET"])
@jwt_required()
@role_required(UserRole.BUYER)
def get_wallet(current_user):
    """Get wallet balance"""
    wallet = WalletService.get_wallet_by_user_id(current_user.id)
    return jsonify({"wallet": wallet.to_dict()}), 200


@wallet_bp.route("/transactions", methods=["GET"])
@jwt_required()
@role_required(UserRole.BUYER)
def get_transactions(current_user):
    """Get wallet transactions"""
    page, per_page = validate_pagination()
    wallet = WalletService.get_wallet_by_user_id(current_user.id)
    pagination = WalletService.get_transactions(wallet.id, page, per_page)

    return (
        jsonify(
            {
                "transactions": [t.to_dict() for t in pagination.items],
                "total": pagination.total,
                "page": page,
                "pages": pagination.pages,
            }
        ),
        200,
    )


@wallet_bp.route("/deposit", methods=["POST"])
@jwt_required()
@role_required(UserRole.BUYER)
@validate_schema(DepositCreateSchema)
def create_deposit(current_user):
    """Open a top-up and return where to send the coins and which memo to attach"""
    deposit = DepositService.create_deposit(current_user.id, request.validated_data["amount"])
    return jsonify({"deposit": deposit.to_instructions()}), 201


@wallet_bp.route("/deposit/<deposit_id>", methods=["GET"])
@jwt_required()
@role_required(UserRole.BUYER)
def check_deposit(deposit_id, current_user):
    return jsonify(DepositService.check_deposit(deposit_id, current_user.id)), 200
