from flask import Blueprint
from .withdrawal_routes import withdrawal_bp

seller_bp = Blueprint("seller", __name__)

seller_bp.register_blueprint(withdrawal_bp, url_prefix="/withdrawals")
