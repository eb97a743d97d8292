from vendorvault.routes.auth import auth_bp
from vendorvault.routes.buyer import buyer_bp
from vendorvault.routes.admin import admin_bp
from vendorvault.routes.seller import seller_bp
from vendorvault.routes.webhooks import webhooks_bp
from vendorvault.routes.cron import cron_bp


def register_blueprints(app):
    """Register all blueprints"""
    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(buyer_bp, url_prefix='/api/buyer')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(seller_bp, url_prefix='/api/seller')
    app.register_blueprint(webhooks_bp, url_prefix='/api/webhooks')
    app.register_blueprint(cron_bp, url_prefix='/api/cron')
