from flask import Blueprint, jsonify
from sqlalchemy import text
from ifimgone.extensions import db
from ifimgone.models import InactivityCheck, Message, Profile
from datetime import datetime
import logging

logger = logging.getLogger(__name__)
health_bp = Blueprint('health', __name__)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    checks = {
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'service': "If I'm Gone Backend",
        'checks': {}
    }

    # Database check
    try:
        db.session.execute(text('SELECT 1'))
        checks['checks']['database'] = 'healthy'
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        checks['checks']['database'] = f'unhealthy: {str(e)}'
        checks['status'] = 'unhealthy'

    # Check table access
    if checks['status'] == 'healthy':
        try:
            checks['stats'] = {
                'profiles': Profile.query.count(),
                'draft_messages': Message.query.filter_by(status=Message.STATUS_DRAFT).count(),
                'pending_checks': InactivityCheck.query.filter_by(status=InactivityCheck.STATUS_PENDING).count()
            }
            checks['checks']['tables'] = 'healthy'
        except Exception as e:
            checks['checks']['tables'] = f'unhealthy: {str(e)}'
            checks['status'] = 'unhealthy'

    status_code = 200 if checks['status'] == 'healthy' else 503
    return jsonify(checks), status_code


@health_bp.route('/live', methods=['GET'])
def liveness_check():
    """Liveness probe"""
    return jsonify({
        'status': 'alive',
        'service': "If I'm Gone Backend",
        'timestamp': datetime.utcnow().isoformat()
    }), 200
