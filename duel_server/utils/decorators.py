"""
Request Decorators

Contains decorators validating HTTP and WebSocket payloads.
"""

from functools import wraps
from flask import request, jsonify
from flask_socketio import emit


def _missing_fields(payload, fields):
    return [name for name in fields if payload.get(name) in (None, '')]


def require_json_fields(*fields):
    """
    Decorator rejecting HTTP requests whose JSON body lacks any of fields.

    The parsed body is passed to the view as the `data` keyword argument.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                return jsonify({
                    'success': False,
                    'error': 'JSON body required'
                }), 400

            missing = _missing_fields(data, fields)
            if missing:
                return jsonify({
                    'success': False,
                    'error': f"Missing required fields: {', '.join(missing)}"
                }), 400

            kwargs['data'] = data
            return f(*args, **kwargs)

        return decorated_function
    return decorator


def socket_payload_required(*fields):
    """Decorator for WebSocket events: emits an error instead of calling the handler on bad payloads."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            payload = args[0] if args else None
            if not isinstance(payload, dict):
                emit('error', {'error': 'Payload must be an object'})
                return

            missing = _missing_fields(payload, fields)
            if missing:
                emit('error', {'error': f"Missing required fields: {', '.join(missing)}"})
                return

            return f(*args, **kwargs)

        return decorated_function
    return decorator
