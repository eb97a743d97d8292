from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from vendorvault.services.auth_service import AuthService
from vendorvault.schemas import UserRegisterSchema, UserLoginSchema
from vendorvault.utils.validators import validate_schema

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
@validate_schema(UserRegisterSchema)
def register():
    """Buyer or seller sign-up. Every account gets a wallet; sellers also get a store profile."""
    user = AuthService.register_user(**request.validated_data)
    return jsonify({"message": "User registered successfully", "user": user.to_dict()}), 201


@auth_bp.route("/login", methods=["POST"])
@validate_schema(UserLoginSchema)
def login():
    return jsonify(AuthService.login_user(**request.validated_data)), 200


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def get_me():
    user = AuthService.get_user_by_id(get_jwt_identity())
    return jsonify({"user": user.to_dict()}), 200
