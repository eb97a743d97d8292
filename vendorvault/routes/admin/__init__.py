from flask import Blueprint
from .order_routes import order_admin_bp
from .review_routes import review_admin_bp
from .settings_routes import settings_admin_bp
from .withdrawal_routes import withdrawal_admin_bp

admin_bp = Blueprint("admin", __name__)

admin_bp.register_blueprint(order_admin_bp)
admin_bp.register_blueprint(review_admin_bp, url_prefix="/review-queue")
admin_bp.register_blueprint(settings_admin_bp, url_prefix="/settings")
admin_bp.register_blueprint(withdrawal_admin_bp, url_prefix="/withdrawals")
