# ifimgone/services/inactivity_service.py
"""
Inactivity check state machine.

    (no check) --threshold crossed--> pending --sign-in--> responded
                                      pending --deadline passed--> missed  => delivery

Only the inactivity service writes InactivityCheck rows. Terminal transitions
are conditional UPDATEs on status = 'pending', so when two sweeps race over
the same check only one of them sees a changed row and performs the side
effects (delivery, audit entry).
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ifimgone.exceptions import NotificationError
from ifimgone.extensions import db
from ifimgone.models import ActivityLog, InactivityCheck, Profile
from ifimgone.services.notification_client import INACTIVITY_WARNING
from ifimgone.utils.links import build_dashboard_link

logger = logging.getLogger(__name__)

# Outcomes reported by evaluate()
SKIPPED = 'skipped'
NO_ACTION = 'no_action'
WARNED = 'warned'
WARNING_SUPPRESSED = 'warning_suppressed'
WARNING_FAILED = 'warning_failed'
CHECK_OPENED = 'check_opened'
CHECK_PENDING = 'check_pending'
CHECK_RESPONDED = 'check_responded'
CHECK_MISSED = 'check_missed'
ALREADY_HANDLED = 'already_handled'


class InactivityCheckService:

    def __init__(self, notifier, dispatcher, response_window_days: int = 7, warning_lead_days: int = 7,
                 warning_cooldown_hours: int = 24, notification_attempts: int = 2):
        self.notifier = notifier
        self.dispatcher = dispatcher
        self.response_window = timedelta(days=response_window_days)
        self.warning_lead_days = warning_lead_days
        self.warning_cooldown = timedelta(hours=warning_cooldown_hours)
        self.notification_attempts = max(1, notification_attempts)

    # =========================================================================
    # SWEEP ENTRY POINT
    # =========================================================================

    def evaluate(self, profile_id: int, now: Optional[datetime] = None) -> str:
        """Run open / warn / expire logic for one profile and report what happened"""
        now = now or datetime.utcnow()

        profile = Profile.query.filter_by(id=profile_id).populate_existing().first()
        if profile is None or profile.last_active is None:
            return SKIPPED

        pending = self._pending_check(profile.id)
        if pending is not None:
            # Activity recorded after the check opened counts as a response
            if profile.last_active > pending.created_at:
                return CHECK_RESPONDED if self._mark_responded(pending.id, profile.id, now, 'activity') else ALREADY_HANDLED
            if pending.is_expired(now):
                return CHECK_MISSED if self.expire(pending.id, now=now) is not None else ALREADY_HANDLED
            return CHECK_PENDING

        days_inactive = profile.days_inactive(now)
        threshold = profile.threshold_days

        if days_inactive >= threshold:
            if self._check_opened_since(profile.id, profile.last_active):
                # This inactivity episode already had its check
                return ALREADY_HANDLED
            check = self.open_check(profile, days_inactive, now=now)
            return CHECK_OPENED if check is not None else CHECK_PENDING

        if days_inactive >= max(threshold - self.warning_lead_days, 1):
            return self.send_approaching_warning(profile, days_inactive, now=now)

        return NO_ACTION

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def open_check(self, profile: Profile, days_inactive: int,
                   now: Optional[datetime] = None) -> Optional[InactivityCheck]:
        """Create the pending check and warn the user; None if one is already open"""
        now = now or datetime.utcnow()

        if self._pending_check(profile.id) is not None:
            return None

        deadline = now + self.response_window
        check = InactivityCheck(
            user_id=profile.id,
            status=InactivityCheck.STATUS_PENDING,
            created_at=now,
            updated_at=now,
            response_required_by=deadline
        )
        db.session.add(check)
        try:
            db.session.flush()
        except IntegrityError:
            # Lost the race against another sweep; the unique pending index held
            db.session.rollback()
            logger.info(f"Pending inactivity check for user {profile.id} already exists")
            return None

        ActivityLog.record(profile.id, ActivityLog.INACTIVITY_CHECK_CREATED, {
            'inactivity_check_id': check.id,
            'days_inactive': days_inactive,
            'threshold': profile.threshold_days,
            'response_deadline': deadline.isoformat()
        }, now=now)
        db.session.commit()
        logger.info(f"Created inactivity check {check.id} for user {profile.id} ({days_inactive} days inactive)")

        self._send_warning(profile, days_inactive, now, reason='check_opened', response_deadline=deadline)
        return check

    def send_approaching_warning(self, profile: Profile, days_inactive: int,
                                 now: Optional[datetime] = None) -> str:
        """Warn-only path: at most one warning per cooldown window, never opens a check"""
        now = now or datetime.utcnow()

        if ActivityLog.exists_since(profile.id, ActivityLog.INACTIVITY_WARNING_SENT, now - self.warning_cooldown):
            return WARNING_SUPPRESSED

        sent = self._send_warning(profile, days_inactive, now, reason='approaching_threshold')
        return WARNED if sent else WARNING_FAILED

    def respond(self, user_id: int, now: Optional[datetime] = None) -> Optional[InactivityCheck]:
        """Sign-in hook: resolve the pending check, if any. Best-effort, never raises."""
        now = now or datetime.utcnow()
        try:
            pending = self._pending_check(user_id)
            if pending is None:
                self._note_response_after_missed(user_id, now)
                return None

            if not self._mark_responded(pending.id, user_id, now, 'sign_in'):
                return None
            logger.info(f"User {user_id} responded to inactivity check {pending.id}")
            return db.session.get(InactivityCheck, pending.id)

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to respond to inactivity check for user {user_id}: {e}")
            return None

    def expire(self, check_id: int, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
        """
        pending -> missed, then hand the user's inactivity messages to the dispatcher.

        Returns the delivery summary, or None when the check was no longer
        pending (another sweep got there first, or it was already missed).
        """
        now = now or datetime.utcnow()

        check = InactivityCheck.query.filter_by(id=check_id).populate_existing().first()
        if check is None or not check.is_pending or not check.is_expired(now):
            return None

        user_id = check.user_id
        deadline = check.response_required_by

        updated = InactivityCheck.query.filter_by(
            id=check_id,
            status=InactivityCheck.STATUS_PENDING
        ).update({
            InactivityCheck.status: InactivityCheck.STATUS_MISSED,
            InactivityCheck.missed_at: now,
            InactivityCheck.updated_at: now
        }, synchronize_session=False)

        if not updated:
            db.session.rollback()
            return None

        ActivityLog.record(user_id, ActivityLog.INACTIVITY_CHECK_MISSED, {
            'inactivity_check_id': check_id,
            'response_deadline': deadline.isoformat()
        }, now=now)
        db.session.commit()
        logger.warning(f"Inactivity check {check_id} for user {user_id} missed, triggering delivery")

        return self.dispatcher.deliver_inactivity_messages(user_id, check_id, now=now)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _mark_responded(self, check_id: int, user_id: int, now: datetime, source: str) -> bool:
        updated = InactivityCheck.query.filter_by(
            id=check_id,
            status=InactivityCheck.STATUS_PENDING
        ).update({
            InactivityCheck.status: InactivityCheck.STATUS_RESPONDED,
            InactivityCheck.responded_at: now,
            InactivityCheck.updated_at: now
        }, synchronize_session=False)

        if not updated:
            db.session.rollback()
            return False

        ActivityLog.record(user_id, ActivityLog.INACTIVITY_CHECK_RESPONDED, {
            'inactivity_check_id': check_id,
            'source': source
        }, now=now)
        db.session.commit()
        return True

    def _note_response_after_missed(self, user_id: int, now: datetime) -> None:
        """A sign-in after a missed check does not undo delivery; record it once for the audit trail"""
        latest = InactivityCheck.query.filter_by(user_id=user_id).order_by(
            InactivityCheck.created_at.desc(),
            InactivityCheck.id.desc()
        ).first()
        if latest is None or latest.status != InactivityCheck.STATUS_MISSED:
            return
        if ActivityLog.exists_since(user_id, ActivityLog.INACTIVITY_RESPONSE_AFTER_MISSED, latest.missed_at or latest.created_at):
            return

        ActivityLog.record(user_id, ActivityLog.INACTIVITY_RESPONSE_AFTER_MISSED, {
            'inactivity_check_id': latest.id,
            'missed_at': latest.missed_at.isoformat() if latest.missed_at else None
        }, now=now)
        db.session.commit()
        logger.warning(f"User {user_id} signed in after inactivity check {latest.id} was missed")

    def _send_warning(self, profile: Profile, days_inactive: int, now: datetime, reason: str,
                      response_deadline: Optional[datetime] = None) -> bool:
        threshold = profile.threshold_days
        variables = {
            'user_name': profile.display_name,
            'days_inactive': days_inactive,
            'threshold_days': threshold,
            'days_remaining': max(0, threshold - days_inactive),
            'dashboard_link': build_dashboard_link(),
            'response_deadline': response_deadline.strftime('%B %d, %Y') if response_deadline else None,
        }

        email_id = None
        for attempt in range(1, self.notification_attempts + 1):
            try:
                email_id = self.notifier.send_template(INACTIVITY_WARNING, to=profile.email, **variables)
                break
            except NotificationError as e:
                logger.warning(
                    f"Inactivity warning to user {profile.id} failed "
                    f"(attempt {attempt}/{self.notification_attempts}): {e}"
                )
        else:
            logger.error(f"Giving up on inactivity warning for user {profile.id}")
            return False

        ActivityLog.record(profile.id, ActivityLog.INACTIVITY_WARNING_SENT, {
            'days_inactive': days_inactive,
            'threshold': threshold,
            'reason': reason,
            'email_id': email_id
        }, now=now)
        db.session.commit()
        logger.info(f"Sent inactivity warning to user {profile.id} ({days_inactive} days inactive)")
        return True

    @staticmethod
    def _pending_check(user_id: int) -> Optional[InactivityCheck]:
        return InactivityCheck.query.filter_by(
            user_id=user_id,
            status=InactivityCheck.STATUS_PENDING
        ).order_by(InactivityCheck.created_at.desc()).populate_existing().first()

    @staticmethod
    def _check_opened_since(user_id: int, since: datetime) -> bool:
        return db.session.query(
            InactivityCheck.query.filter(
                InactivityCheck.user_id == user_id,
                InactivityCheck.created_at >= since
            ).exists()
        ).scalar()
