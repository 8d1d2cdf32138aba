# ifimgone/services/release_service.py
"""Manual release of 'manual' messages by a verified trusted contact"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from ifimgone.exceptions import ReleaseNotAuthorizedError
from ifimgone.extensions import db
from ifimgone.models import ActivityLog, Message, TrustedContact
from ifimgone.services.delivery_dispatcher import DELIVERY_REASONS

logger = logging.getLogger(__name__)


class ReleaseService:

    def __init__(self, dispatcher):
        self.dispatcher = dispatcher

    def authorize(self, contact_id: int, release_key: str) -> TrustedContact:
        """Return the contact if it may release messages, else raise ReleaseNotAuthorizedError"""
        contact = db.session.get(TrustedContact, contact_id)

        if contact is None or not contact.check_release_key(release_key):
            logger.warning(f"Rejected release request for trusted contact {contact_id}: bad credentials")
            raise ReleaseNotAuthorizedError("Invalid trusted contact or release key")

        if not contact.is_verified:
            raise ReleaseNotAuthorizedError("Trusted contact has not been verified")

        if not contact.can_release_messages:
            raise ReleaseNotAuthorizedError("Trusted contact is not allowed to release messages")

        return contact

    def release_messages(self, contact_id: int, release_key: str,
                         message_ids: Optional[Iterable[int]] = None,
                         reason: Optional[str] = None,
                         now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Deliver the owner's draft manual messages.

        When message_ids is given only those are considered; ids that do not
        belong to the owner, are not manual, or are already delivered are
        reported back as ignored.
        """
        now = now or datetime.utcnow()
        contact = self.authorize(contact_id, release_key)
        user_id = contact.user_id

        query = Message.query.filter(
            Message.user_id == user_id,
            Message.trigger_type == Message.TRIGGER_MANUAL,
            Message.status == Message.STATUS_DRAFT
        )
        requested = None
        if message_ids is not None:
            requested = sorted(set(message_ids))
            query = query.filter(Message.id.in_(requested))

        eligible_ids = [message.id for message in query.order_by(Message.id)]
        ignored = [mid for mid in requested if mid not in eligible_ids] if requested is not None else []

        delivery_reason = reason or DELIVERY_REASONS[Message.TRIGGER_MANUAL]
        results, released, failed = [], [], []
        for message_id in eligible_ids:
            try:
                result = self.dispatcher.deliver(message_id, reason=delivery_reason, now=now)
            except Exception as e:
                db.session.rollback()
                logger.error(f"Release of message {message_id} failed: {e}", exc_info=True)
                failed.append(message_id)
                continue

            results.append(result)
            if result.skipped:
                if result.skip_reason == 'no_recipients':
                    failed.append(message_id)
            elif result.delivered_count:
                released.append(message_id)
            else:
                failed.append(message_id)

        ActivityLog.record(user_id, ActivityLog.MESSAGES_RELEASED, {
            'trusted_contact_id': contact.id,
            'trusted_contact_email': contact.email,
            'reason': reason,
            'released_message_ids': released,
            'failed_message_ids': failed,
            'ignored_message_ids': ignored
        }, now=now)
        db.session.commit()

        logger.info(f"Trusted contact {contact.id} released {len(released)} message(s) for user {user_id}")
        return {
            'success': True,
            'released_message_ids': released,
            'failed_message_ids': failed,
            'ignored_message_ids': ignored,
            'results': [r.to_dict() for r in results]
        }
