from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from vendorvault.enums import UserRole
from vendorvault.schemas import SettingsUpdateSchema
from vendorvault.services.settings_service import SettingsService
from vendorvault.utils.decorators import role_required
from vendorvault.utils.validators import validate_schema

settings_admin_bp = Blueprint("settings", __name__)


@settings_admin_bp.route("", methods=["GET"])
@jwt_required()
@role_required(UserRole.ADMIN)
def get_settings(current_user):
    return jsonify({"settings": SettingsService.get().to_dict()}), 200


@settings_admin_bp.route("", methods=["PUT"])
@jwt_required()
@role_required(UserRole.ADMIN)
@validate_schema(SettingsUpdateSchema)
def update_settings(current_user):
    """Update risk thresholds. Applies to the next assessment."""
    settings = SettingsService.update(**request.validated_data)
    return jsonify({"message": "Settings updated", "settings": settings.to_dict()}), 200
