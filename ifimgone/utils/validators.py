from functools import wraps
from flask import request, jsonify
from marshmallow import ValidationError


def validate_request_json(schema):
    """Decorator to validate JSON request data"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not request.is_json:
                return jsonify({
                    'success': False,
                    'error': 'Content-Type must be application/json'
                }), 400

            json_data = request.get_json(silent=True)
            if json_data is None:
                return jsonify({
                    'success': False,
                    'error': 'Invalid JSON'
                }), 400

            try:
                request.validated_data = schema.load(json_data)
            except ValidationError as e:
                return jsonify({
                    'success': False,
                    'error': 'Validation failed',
                    'errors': e.messages
                }), 400

            return f(*args, **kwargs)
        return decorated_function
    return decorator
