from functools import wraps
from flask import request, jsonify
from marshmallow import ValidationError
from vendorvault.exceptions import DomainError


def validate_schema(schema_class):
    """Load the JSON body through a marshmallow schema into request.validated_data"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                request.validated_data = schema_class().load(request.get_json(silent=True) or {})
            except ValidationError as err:
                return jsonify({'error': 'Validation error', 'messages': err.messages}), 400
            return f(*args, **kwargs)
        return decorated_function
    return decorator


def validate_pagination(max_per_page=100):
    """Clamp page/per_page query args, falling back to 20 per page"""
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = request.args.get('per_page', 20, type=int)
    if per_page < 1 or per_page > max_per_page:
        per_page = 20
    return page, per_page


def parse_enum_arg(name, enum_class):
    """Optional query arg converted to its enum, e.g. ?status=completed"""
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return enum_class(raw)
    except ValueError:
        raise DomainError(f"Invalid {name}: {raw}")
