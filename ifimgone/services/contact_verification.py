# ifimgone/services/contact_verification.py
"""
Trusted contact verification.

The owner asks for a contact to be verified, the contact receives a one-time
link, and following it marks the contact verified and hands out the release
key ReleaseService checks. Only token and key hashes are stored.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ifimgone.exceptions import (
    ContactVerificationError,
    NotificationError,
    TrustedContactNotFoundError,
)
from ifimgone.extensions import db
from ifimgone.models import ActivityLog, TrustedContact
from ifimgone.services.notification_client import CONTACT_VERIFICATION
from ifimgone.utils.links import build_verification_link

logger = logging.getLogger(__name__)


class ContactVerificationService:

    def __init__(self, notifier, token_ttl_days: int = 7, notification_attempts: int = 2):
        self.notifier = notifier
        self.token_ttl_days = token_ttl_days
        self.notification_attempts = max(1, notification_attempts)

    def request_verification(self, user_id: int, contact_id: int,
                             now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Issue a fresh verification token and email the link to the contact.

        A verified contact goes back to pending until the new link is used.
        A failed email keeps the token valid so the owner can simply retry.
        """
        now = now or datetime.utcnow()
        contact = TrustedContact.query.filter_by(id=contact_id, user_id=user_id).first()
        if contact is None:
            raise TrustedContactNotFoundError(f"Trusted contact {contact_id} not found")

        token = contact.issue_verification_token(now, self.token_ttl_days)
        db.session.commit()

        email_sent = self._send_verification(contact, token)

        ActivityLog.record(user_id, ActivityLog.VERIFICATION_REQUEST_SENT, {
            'contact_id': contact.id,
            'contact_email': contact.email,
            'expires_at': contact.verification_expires_at.isoformat(),
            'email_sent': email_sent
        }, now=now)
        db.session.commit()

        return {
            'contact_id': contact.id,
            'verification_status': contact.verification_status,
            'expires_at': contact.verification_expires_at.isoformat(),
            'email_sent': email_sent
        }

    def verify(self, token: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Consume a verification token; returns the contact id and its new release key"""
        now = now or datetime.utcnow()
        if not token:
            raise ContactVerificationError("Invalid or expired verification token")

        token_hash = TrustedContact.hash_token(token)
        contact = TrustedContact.query.filter_by(
            verification_token_hash=token_hash,
            verification_status=TrustedContact.STATUS_PENDING
        ).first()
        if contact is None:
            raise ContactVerificationError("Invalid or expired verification token")

        if contact.verification_expires_at is not None and now > contact.verification_expires_at:
            contact.verification_status = TrustedContact.STATUS_UNVERIFIED
            contact.verification_token_hash = None
            db.session.commit()
            logger.info(f"Verification token for trusted contact {contact.id} expired")
            raise ContactVerificationError("Verification token has expired")

        release_key, release_key_hash = TrustedContact.generate_release_key()
        updated = TrustedContact.query.filter_by(
            id=contact.id,
            verification_token_hash=token_hash,
            verification_status=TrustedContact.STATUS_PENDING
        ).update({
            TrustedContact.verification_status: TrustedContact.STATUS_VERIFIED,
            TrustedContact.verification_token_hash: None,
            TrustedContact.verification_expires_at: None,
            TrustedContact.release_key_hash: release_key_hash,
            TrustedContact.last_verified_at: now,
            TrustedContact.updated_at: now
        }, synchronize_session=False)

        if not updated:
            db.session.rollback()
            raise ContactVerificationError("Invalid or expired verification token")

        ActivityLog.record(contact.user_id, ActivityLog.CONTACT_VERIFIED, {
            'contact_id': contact.id,
            'verified_at': now.isoformat()
        }, now=now)
        db.session.commit()

        logger.info(f"Trusted contact {contact.id} verified for user {contact.user_id}")
        return {
            'contact_id': contact.id,
            'release_key': release_key
        }

    def _send_verification(self, contact: TrustedContact, token: str) -> bool:
        for attempt in range(1, self.notification_attempts + 1):
            try:
                self.notifier.send_template(
                    CONTACT_VERIFICATION,
                    to=contact.email,
                    contact_name=contact.name,
                    sender_name=contact.user.display_name,
                    verification_link=build_verification_link(token),
                    verification_token=token
                )
                return True
            except NotificationError as e:
                logger.warning(
                    f"Verification email to trusted contact {contact.id} failed "
                    f"(attempt {attempt}/{self.notification_attempts}): {e}"
                )
        logger.error(f"Could not send verification email to trusted contact {contact.id}")
        return False
