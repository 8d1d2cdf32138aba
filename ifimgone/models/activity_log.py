from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from ifimgone.extensions import db


class ActivityLog(db.Model):
    """Append-only audit trail of state transitions"""
    __tablename__ = 'activity_logs'

    USER_SIGNED_IN = 'user_signed_in'
    INACTIVITY_CHECK_CREATED = 'inactivity_check_created'
    INACTIVITY_WARNING_SENT = 'inactivity_warning_sent'
    INACTIVITY_CHECK_RESPONDED = 'inactivity_check_responded'
    INACTIVITY_CHECK_MISSED = 'inactivity_check_missed'
    INACTIVITY_RESPONSE_AFTER_MISSED = 'inactivity_response_after_missed'
    MESSAGE_DELIVERY_ATTEMPT = 'message_delivery_attempt'
    MESSAGE_DELIVERED = 'message_delivered'
    MESSAGE_DELIVERY_FAILED = 'message_delivery_failed'
    MESSAGES_DELIVERED_DUE_TO_INACTIVITY = 'messages_delivered_due_to_inactivity'
    MESSAGES_RELEASED = 'messages_released'
    VERIFICATION_REQUEST_SENT = 'verification_request_sent'
    CONTACT_VERIFIED = 'contact_verified'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), index=True)

    action = db.Column(db.String(60), nullable=False, index=True)
    details = db.Column(db.JSON)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    user = db.relationship('Profile', back_populates='activity_logs')

    @classmethod
    def record(cls, user_id: Optional[int], action: str, details: Optional[Dict[str, Any]] = None,
               now: Optional[datetime] = None) -> 'ActivityLog':
        """Stage a new entry on the current session (caller commits)"""
        entry = cls(
            user_id=user_id,
            action=action,
            details=details or {},
            created_at=now or datetime.utcnow()
        )
        db.session.add(entry)
        return entry

    @classmethod
    def exists_since(cls, user_id: int, action: str, since: datetime) -> bool:
        """Whether an entry of this action was written at or after `since`"""
        return db.session.query(
            cls.query.filter(
                cls.user_id == user_id,
                cls.action == action,
                cls.created_at >= since
            ).exists()
        ).scalar()

    @classmethod
    def recent(cls, user_id: int, hours: int = 24, now: Optional[datetime] = None):
        now = now or datetime.utcnow()
        return cls.query.filter(
            cls.user_id == user_id,
            cls.created_at >= now - timedelta(hours=hours)
        ).order_by(cls.created_at.desc()).all()

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'action': self.action,
            'details': self.details or {},
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<ActivityLog {self.id}: {self.action}>'
