from datetime import datetime

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity

from ifimgone.extensions import db
from ifimgone.models import ActivityLog, InactivityCheck, Profile
from ifimgone.services import get_activity_tracker

activity_bp = Blueprint('activity', __name__)


def _current_user_id():
    return int(get_jwt_identity())


@activity_bp.route('/sign-in', methods=['POST'])
@jwt_required()
def sign_in():
    """Record a sign-in and resolve any pending inactivity check"""
    user_id = _current_user_id()
    if db.session.get(Profile, user_id) is None:
        return jsonify({'success': False, 'error': 'Profile not found'}), 404

    result = get_activity_tracker().record_sign_in(
        user_id,
        user_agent=request.headers.get('User-Agent')
    )
    return jsonify({'success': True, **result}), 200


@activity_bp.route('/heartbeat', methods=['POST'])
@jwt_required()
def heartbeat():
    """Periodic or interaction-driven activity ping (debounced)"""
    user_id = _current_user_id()
    recorded = get_activity_tracker().record_activity(user_id)
    return jsonify({'success': True, 'activity_recorded': recorded}), 200


@activity_bp.route('/status', methods=['GET'])
@jwt_required()
def status():
    user_id = _current_user_id()
    profile = db.session.get(Profile, user_id)
    if profile is None:
        return jsonify({'success': False, 'error': 'Profile not found'}), 404

    now = datetime.utcnow()
    elapsed = get_activity_tracker().time_since_last_activity(user_id, now=now)
    pending = InactivityCheck.query.filter_by(
        user_id=user_id,
        status=InactivityCheck.STATUS_PENDING
    ).first()

    return jsonify({
        'success': True,
        'profile': profile.to_dict(),
        'last_active': profile.last_active.isoformat() if profile.last_active else None,
        'seconds_since_last_activity': int(elapsed.total_seconds()) if elapsed is not None else None,
        'days_inactive': profile.days_inactive(now),
        'inactivity_threshold': profile.threshold_days,
        'pending_check': pending.to_dict() if pending else None,
        'recent_activity': [entry.to_dict() for entry in ActivityLog.recent(user_id, hours=24 * 7, now=now)]
    }), 200
