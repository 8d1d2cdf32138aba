from datetime import datetime
from typing import Optional

from flask import current_app

from ifimgone.extensions import db


def _default_threshold():
    return current_app.config.get('DEFAULT_INACTIVITY_THRESHOLD_DAYS', 30)


class Profile(db.Model):
    """Account profile - identity plus the inactivity settings the sweeps read"""
    __tablename__ = 'profiles'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    full_name = db.Column(db.String(150))

    # Activity tracking
    last_active = db.Column(db.DateTime, index=True)
    inactivity_threshold = db.Column(db.Integer, default=_default_threshold, nullable=False)  # days

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    messages = db.relationship('Message', back_populates='user', lazy='dynamic')
    recipients = db.relationship('Recipient', back_populates='user', lazy='dynamic')
    inactivity_checks = db.relationship('InactivityCheck', back_populates='user', lazy='dynamic')
    trusted_contacts = db.relationship('TrustedContact', back_populates='user', lazy='dynamic')
    activity_logs = db.relationship('ActivityLog', back_populates='user', lazy='dynamic')

    __table_args__ = (
        db.CheckConstraint('inactivity_threshold >= 1', name='ck_profiles_threshold_positive'),
    )

    @property
    def display_name(self) -> str:
        return self.full_name or 'User'

    @property
    def threshold_days(self) -> int:
        return self.inactivity_threshold

    def days_inactive(self, now: Optional[datetime] = None) -> Optional[int]:
        """Whole days elapsed since last activity (floored)"""
        if self.last_active is None:
            return None
        now = now or datetime.utcnow()
        return max(0, (now - self.last_active).days)

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'full_name': self.full_name,
            'last_active': self.last_active.isoformat() if self.last_active else None,
            'inactivity_threshold': self.inactivity_threshold,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<Profile {self.id}: {self.email}>'
