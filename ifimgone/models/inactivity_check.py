from datetime import datetime

from ifimgone.extensions import db


class InactivityCheck(db.Model):
    """Confirmation window opened when a user crosses their inactivity threshold"""
    __tablename__ = 'inactivity_checks'

    STATUS_PENDING = 'pending'
    STATUS_RESPONDED = 'responded'
    STATUS_MISSED = 'missed'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    response_required_by = db.Column(db.DateTime, nullable=False)

    # Transition timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    responded_at = db.Column(db.DateTime)
    missed_at = db.Column(db.DateTime)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('Profile', back_populates='inactivity_checks')

    __table_args__ = (
        db.CheckConstraint("status IN ('pending', 'responded', 'missed')", name='ck_inactivity_checks_status'),
        # At most one pending check per user
        db.Index(
            'uq_inactivity_checks_one_pending',
            'user_id',
            unique=True,
            postgresql_where=db.text("status = 'pending'"),
            sqlite_where=db.text("status = 'pending'")
        ),
    )

    @property
    def is_pending(self) -> bool:
        return self.status == self.STATUS_PENDING

    def is_expired(self, now=None) -> bool:
        now = now or datetime.utcnow()
        return now > self.response_required_by

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'status': self.status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'response_required_by': self.response_required_by.isoformat() if self.response_required_by else None,
            'responded_at': self.responded_at.isoformat() if self.responded_at else None,
            'missed_at': self.missed_at.isoformat() if self.missed_at else None
        }

    def __repr__(self):
        return f'<InactivityCheck {self.id}: user {self.user_id} {self.status}>'
