from flask import Blueprint
from .checkout_routes import checkout_bp
from .order_routes import order_bp
from .wallet_routes import wallet_bp
from .notification_routes import notification_bp

buyer_bp = Blueprint("buyer", __name__)

buyer_bp.register_blueprint(checkout_bp, url_prefix="/checkout")
buyer_bp.register_blueprint(order_bp, url_prefix="/orders")
buyer_bp.register_blueprint(wallet_bp, url_prefix="/wallet")
buyer_bp.register_blueprint(notification_bp, url_prefix="/notifications")
