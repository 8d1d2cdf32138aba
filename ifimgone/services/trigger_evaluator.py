# ifimgone/services/trigger_evaluator.py
"""
Periodic sweeps that decide which messages are deliverable.

- Inactivity sweep: every profile with a recorded last_active goes through
  the inactivity check state machine.
- Date sweep: draft messages with trigger_type 'date' whose trigger_date has
  passed go straight to the dispatcher.

Manual messages are never touched here. A sweep never raises because of a
single item: transient errors are retried once, then the item is left for the
next run.
"""
import logging
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError

from ifimgone.exceptions import NotificationError
from ifimgone.extensions import db
from ifimgone.models import Message, Profile
from ifimgone.services.delivery_dispatcher import DELIVERY_REASONS

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (SQLAlchemyError, NotificationError)


class TriggerEvaluator:

    def __init__(self, inactivity_service, dispatcher, item_attempts: int = 2):
        self.inactivity_service = inactivity_service
        self.dispatcher = dispatcher
        self.item_attempts = max(1, item_attempts)

    def run_inactivity_sweep(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        profile_ids = [
            row.id for row in db.session.query(Profile.id).filter(
                Profile.last_active.isnot(None)
            ).order_by(Profile.id)
        ]
        logger.info(f"Inactivity sweep started for {len(profile_ids)} profiles")

        summary = self._new_summary('inactivity', now)
        for profile_id in profile_ids:
            outcome = self._run_item(
                f"profile {profile_id}",
                lambda: self.inactivity_service.evaluate(profile_id, now=now),
                summary
            )
            if outcome is not None:
                summary['outcomes'][outcome] += 1

        return self._finish(summary)

    def run_date_sweep(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.utcnow()
        message_ids = [
            row.id for row in db.session.query(Message.id).filter(
                Message.status == Message.STATUS_DRAFT,
                Message.trigger_type == Message.TRIGGER_DATE,
                Message.trigger_date.isnot(None),
                Message.trigger_date <= now
            ).order_by(Message.id)
        ]
        logger.info(f"Date sweep found {len(message_ids)} due messages")

        summary = self._new_summary('date', now)
        for message_id in message_ids:
            result = self._run_item(
                f"message {message_id}",
                lambda: self.dispatcher.deliver(
                    message_id,
                    reason=DELIVERY_REASONS[Message.TRIGGER_DATE],
                    now=now
                ),
                summary
            )
            if result is None:
                continue
            if result.skipped and result.skip_reason != 'no_recipients':
                summary['outcomes']['skipped'] += 1
            elif result.delivered_count:
                summary['outcomes']['partial' if result.is_partial else 'delivered'] += 1
            else:
                summary['outcomes']['failed'] += 1

        return self._finish(summary)

    def _run_item(self, label: str, work: Callable[[], Any], summary: Dict[str, Any]):
        """Run one sweep item, retrying a transient failure once; None when it gave up"""
        summary['processed'] += 1
        for attempt in range(1, self.item_attempts + 1):
            try:
                return work()
            except TRANSIENT_ERRORS as e:
                db.session.rollback()
                if attempt < self.item_attempts:
                    logger.warning(f"Transient error on {label}, retrying: {e}")
                    continue
                logger.error(f"Giving up on {label} until the next sweep: {e}")
                summary['errors'].append({'item': label, 'error': str(e)})
            except Exception as e:
                db.session.rollback()
                logger.error(f"Unexpected error on {label}: {e}", exc_info=True)
                summary['errors'].append({'item': label, 'error': str(e)})
                break
        return None

    @staticmethod
    def _new_summary(sweep: str, now: datetime) -> Dict[str, Any]:
        return {
            'sweep': sweep,
            'started_at': now.isoformat(),
            'processed': 0,
            'outcomes': Counter(),
            'errors': []
        }

    @staticmethod
    def _finish(summary: Dict[str, Any]) -> Dict[str, Any]:
        summary['outcomes'] = dict(summary['outcomes'])
        summary['success'] = not summary['errors']
        logger.info(
            f"{summary['sweep'].capitalize()} sweep finished: {summary['processed']} processed, "
            f"outcomes={summary['outcomes']}, errors={len(summary['errors'])}"
        )
        return summary
