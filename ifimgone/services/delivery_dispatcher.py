# ifimgone/services/delivery_dispatcher.py
"""
Recipient-by-recipient delivery of legacy messages.

Every trigger (inactivity, date, manual release) ends up in
DeliveryDispatcher.deliver, which is the only code path that moves a message
from draft to delivered.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ifimgone.exceptions import NotificationError
from ifimgone.extensions import db
from ifimgone.models import ActivityLog, Message
from ifimgone.services.notification_client import MESSAGE_DELIVERY
from ifimgone.utils.links import build_message_link

logger = logging.getLogger(__name__)

DELIVERY_REASONS = {
    Message.TRIGGER_INACTIVITY: 'inactivity detected',
    Message.TRIGGER_DATE: 'scheduled delivery',
    Message.TRIGGER_MANUAL: 'released by a trusted contact',
}


@dataclass
class DeliveryResult:
    message_id: int
    delivered_count: int = 0
    failed_recipients: List[str] = field(default_factory=list)
    skipped: bool = False
    skip_reason: Optional[str] = None
    status_changed: bool = False

    @property
    def is_partial(self) -> bool:
        return self.delivered_count > 0 and bool(self.failed_recipients)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'message_id': self.message_id,
            'delivered_count': self.delivered_count,
            'failed_recipients': list(self.failed_recipients),
            'skipped': self.skipped,
            'skip_reason': self.skip_reason,
            'status_changed': self.status_changed
        }


class DeliveryDispatcher:
    """Sends a message to each linked recipient and owns the draft -> delivered transition"""

    def __init__(self, notifier, max_attempts: int = 2):
        self.notifier = notifier
        self.max_attempts = max(2, max_attempts)

    def deliver(self, message_id: int, reason: Optional[str] = None,
                now: Optional[datetime] = None) -> DeliveryResult:
        """
        Deliver one message to all of its recipients.

        Calling this for a message that is no longer a draft is a no-op, which
        is what keeps repeated sweeps from sending twice. The message becomes
        delivered as soon as one recipient is reached; recipients that still
        fail after retrying are reported in failed_recipients.
        """
        now = now or datetime.utcnow()
        result = DeliveryResult(message_id=message_id)

        message = Message.query.filter_by(id=message_id).populate_existing().first()
        if message is None:
            result.skipped, result.skip_reason = True, 'not_found'
            logger.warning(f"Message {message_id} not found, nothing to deliver")
            return result

        if not message.is_deliverable:
            result.skipped, result.skip_reason = True, f'status_{message.status}'
            logger.info(f"Message {message_id} already {message.status}, skipping")
            return result

        user_id = message.user_id
        recipients = [(r.id, r.email, r.name) for r in message.recipients]
        template_vars = {
            'sender_name': message.user.full_name or 'Someone special',
            'message_title': message.title,
            'message_link': build_message_link(message.id),
            'message_id': message.id,
            'has_pin': message.has_pin,
            'delivery_reason': reason or DELIVERY_REASONS.get(message.trigger_type, 'scheduled delivery'),
        }

        if not recipients:
            result.skipped, result.skip_reason = True, 'no_recipients'
            ActivityLog.record(user_id, ActivityLog.MESSAGE_DELIVERY_FAILED, {
                'message_id': message_id,
                'reason': 'no_recipients'
            }, now=now)
            db.session.commit()
            logger.warning(f"Message {message_id} has no recipients")
            return result

        transition_attempted = False
        for recipient_id, email, name in recipients:
            provider_id, error, attempts = self._send_to_recipient(email, name, template_vars)
            succeeded = error is None

            ActivityLog.record(user_id, ActivityLog.MESSAGE_DELIVERY_ATTEMPT, {
                'message_id': message_id,
                'recipient_id': recipient_id,
                'recipient_email': email,
                'recipient_name': name,
                'delivery_method': 'email',
                'outcome': 'success' if succeeded else 'failed',
                'attempts': attempts,
                'email_id': provider_id,
                'error': error
            }, now=now)

            if succeeded:
                result.delivered_count += 1
                if not transition_attempted:
                    transition_attempted = True
                    result.status_changed = self._mark_delivered(message_id, user_id, now)
                    if not result.status_changed:
                        # Another dispatcher owns the fan-out for this message
                        result.skipped, result.skip_reason = True, 'delivered_concurrently'
                        db.session.commit()
                        return result
            else:
                result.failed_recipients.append(email)

            db.session.commit()

        if result.delivered_count == 0:
            ActivityLog.record(user_id, ActivityLog.MESSAGE_DELIVERY_FAILED, {
                'message_id': message_id,
                'reason': 'all_recipients_failed',
                'failed_recipients': result.failed_recipients
            }, now=now)
            db.session.commit()
            logger.error(f"Message {message_id} could not be delivered to any recipient")
        elif result.is_partial:
            logger.warning(
                f"Message {message_id} partially delivered: "
                f"{result.delivered_count} ok, {len(result.failed_recipients)} failed"
            )
        else:
            logger.info(f"Message {message_id} delivered to {result.delivered_count} recipient(s)")

        return result

    def deliver_inactivity_messages(self, user_id: int, check_id: int,
                                    now: Optional[datetime] = None) -> Dict[str, Any]:
        """Deliver every draft inactivity-triggered message of a user whose check was missed"""
        now = now or datetime.utcnow()
        message_ids = [
            row.id for row in db.session.query(Message.id).filter(
                Message.user_id == user_id,
                Message.status == Message.STATUS_DRAFT,
                Message.trigger_type == Message.TRIGGER_INACTIVITY
            ).order_by(Message.id)
        ]

        delivered, failed = [], []
        for message_id in message_ids:
            try:
                outcome = self.deliver(message_id, reason=DELIVERY_REASONS[Message.TRIGGER_INACTIVITY], now=now)
            except Exception as e:
                db.session.rollback()
                logger.error(f"Inactivity delivery of message {message_id} failed: {e}", exc_info=True)
                failed.append(message_id)
                continue

            if outcome.skipped:
                if outcome.skip_reason == 'no_recipients':
                    failed.append(message_id)
            elif outcome.delivered_count:
                delivered.append(message_id)
            else:
                failed.append(message_id)

        ActivityLog.record(user_id, ActivityLog.MESSAGES_DELIVERED_DUE_TO_INACTIVITY, {
            'inactivity_check_id': check_id,
            'messages_found': len(message_ids),
            'messages_delivered': len(delivered),
            'failed_message_ids': failed
        }, now=now)
        db.session.commit()

        logger.info(f"Triggered delivery of {len(delivered)}/{len(message_ids)} messages for user {user_id}")
        return {
            'messages_found': len(message_ids),
            'delivered_message_ids': delivered,
            'failed_message_ids': failed
        }

    def _send_to_recipient(self, email: str, name: str, template_vars: Dict[str, Any]):
        """Returns (provider_id, error, attempts); error is None on success"""
        error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                provider_id = self.notifier.send_template(
                    MESSAGE_DELIVERY,
                    to=email,
                    recipient_name=name,
                    **template_vars
                )
                return provider_id, None, attempt
            except NotificationError as e:
                error = str(e)
                logger.warning(
                    f"Delivery of message {template_vars['message_id']} to {email} "
                    f"failed (attempt {attempt}/{self.max_attempts}): {e}"
                )
        return None, error, self.max_attempts

    def _mark_delivered(self, message_id: int, user_id: int, now: datetime) -> bool:
        updated = Message.query.filter_by(
            id=message_id,
            status=Message.STATUS_DRAFT
        ).update({
            Message.status: Message.STATUS_DELIVERED,
            Message.delivered_at: now,
            Message.updated_at: now
        }, synchronize_session=False)

        if not updated:
            logger.warning(f"Message {message_id} was delivered concurrently by another dispatcher")
            return False

        ActivityLog.record(user_id, ActivityLog.MESSAGE_DELIVERED, {
            'message_id': message_id,
            'delivered_at': now.isoformat()
        }, now=now)
        return True
