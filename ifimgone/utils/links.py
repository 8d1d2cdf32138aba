"""Stable signed links sent to recipients and account owners"""
import hashlib
import hmac

from flask import current_app


def _message_signature(message_id, secret: str) -> str:
    return hmac.new(
        secret.encode('utf-8'),
        f"message:{message_id}".encode('utf-8'),
        hashlib.sha256
    ).hexdigest()[:32]


def build_message_link(message_id) -> str:
    """Viewing link for a delivered message; the same id always yields the same link"""
    base_url = current_app.config.get('APP_URL', 'http://localhost:3000').rstrip('/')
    signature = _message_signature(message_id, current_app.config['SECRET_KEY'])
    return f"{base_url}/message/{message_id}?sig={signature}"


def verify_message_signature(message_id, signature: str) -> bool:
    if not signature:
        return False
    expected = _message_signature(message_id, current_app.config['SECRET_KEY'])
    return hmac.compare_digest(expected, signature)


def build_dashboard_link() -> str:
    base_url = current_app.config.get('APP_URL', 'http://localhost:3000').rstrip('/')
    return f"{base_url}/dashboard"


def build_verification_link(token: str) -> str:
    base_url = current_app.config.get('APP_URL', 'http://localhost:3000').rstrip('/')
    return f"{base_url}/verify-contact?token={token}"
