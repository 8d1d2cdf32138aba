import hashlib
import hmac
import secrets
from datetime import datetime, timedelta

from ifimgone.extensions import db


def _digest(value: str) -> str:
    return hashlib.sha256(value.encode()).hexdigest()


class TrustedContact(db.Model):
    """Person allowed to act on the account owner's behalf"""
    __tablename__ = 'trusted_contacts'

    STATUS_UNVERIFIED = 'unverified'
    STATUS_PENDING = 'pending'
    STATUS_VERIFIED = 'verified'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False, index=True)

    name = db.Column(db.String(150), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    relationship = db.Column(db.String(50))

    # Permissions
    can_release_messages = db.Column(db.Boolean, default=False, nullable=False)

    # Verification
    verification_status = db.Column(db.String(20), default=STATUS_UNVERIFIED)  # unverified, pending, verified
    verification_token_hash = db.Column(db.String(64), index=True)
    verification_expires_at = db.Column(db.DateTime)
    release_key_hash = db.Column(db.String(64))
    last_verified_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship('Profile', back_populates='trusted_contacts')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'email', name='uq_trusted_contact_email'),
    )

    @property
    def is_verified(self) -> bool:
        return self.verification_status == self.STATUS_VERIFIED

    @staticmethod
    def hash_token(token: str) -> str:
        return _digest(token)

    @staticmethod
    def generate_release_key():
        """Returns (key, key_hash); only the hash is ever stored"""
        key = f"rk_{secrets.token_urlsafe(32)}"
        return key, _digest(key)

    def issue_release_key(self) -> str:
        key, self.release_key_hash = self.generate_release_key()
        return key

    def check_release_key(self, key: str) -> bool:
        if not key or not self.release_key_hash:
            return False
        return hmac.compare_digest(_digest(key), self.release_key_hash)

    def issue_verification_token(self, now: datetime, ttl_days: int) -> str:
        """Start a verification round; any earlier token stops working"""
        token = secrets.token_urlsafe(32)
        self.verification_token_hash = _digest(token)
        self.verification_expires_at = now + timedelta(days=ttl_days)
        self.verification_status = self.STATUS_PENDING
        return token
