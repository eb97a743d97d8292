import hmac
from functools import wraps
from flask import current_app, jsonify, request
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from vendorvault.extensions import db
from vendorvault.models.user import User

LOCAL_ADDRESSES = ("127.0.0.1", "::1")


def role_required(*roles):
    """Decorator to check if user has required role"""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            user_id = get_jwt_identity()
            user = db.session.get(User, user_id)
            
            if not user or not user.is_active or user.is_deleted:
                return jsonify({'error': 'User not found or inactive'}), 403
            
            if user.role not in roles:
                return jsonify({'error': 'Insufficient permissions'}), 403
            
            # Pass user to route handler
            kwargs['current_user'] = user
            return fn(*args, **kwargs)
        return wrapper
    return decorator


def cron_secret_required(fn):
    """Bearer CRON_SECRET, or localhost only when no secret is configured"""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        secret = current_app.config.get("CRON_SECRET")
        if secret:
            header = request.headers.get("Authorization", "")
            if not hmac.compare_digest(header, f"Bearer {secret}"):
                return jsonify({"error": "Unauthorized"}), 401
        else:
            if request.remote_addr not in LOCAL_ADDRESSES:
                return jsonify({"error": "CRON_SECRET not configured"}), 403
        return fn(*args, **kwargs)
    return wrapper
