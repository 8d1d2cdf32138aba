# ifimgone/services/activity_tracker.py
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ifimgone.extensions import db
from ifimgone.models import ActivityLog, Profile

logger = logging.getLogger(__name__)


class ActivityTracker:
    """Sole writer of Profile.last_active. Best-effort: failures are logged, never raised."""

    def __init__(self, inactivity_service, debounce_seconds: int = 60):
        self.inactivity_service = inactivity_service
        self.debounce = timedelta(seconds=debounce_seconds)

    def record_activity(self, user_id: int, now: Optional[datetime] = None, debounce: bool = True) -> bool:
        """
        Set last_active = now for the user.

        With debounce the write is a single conditional UPDATE that only touches
        rows whose last_active is unset or older than the debounce window, so
        bursts of interaction events collapse into one write.
        """
        now = now or datetime.utcnow()
        try:
            query = Profile.query.filter(Profile.id == user_id)
            if debounce:
                query = query.filter(or_(
                    Profile.last_active.is_(None),
                    Profile.last_active <= now - self.debounce
                ))
            updated = query.update(
                {Profile.last_active: now, Profile.updated_at: now},
                synchronize_session=False
            )
            db.session.commit()
            return updated > 0

        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to record activity for user {user_id}: {e}")
            return False

    def record_sign_in(self, user_id: int, now: Optional[datetime] = None,
                       user_agent: Optional[str] = None) -> Dict[str, Any]:
        """Sign-in hook: fresh activity, resolve any pending check, audit entry"""
        now = now or datetime.utcnow()

        recorded = self.record_activity(user_id, now=now, debounce=False)
        check = self.inactivity_service.respond(user_id, now=now)

        try:
            ActivityLog.record(user_id, ActivityLog.USER_SIGNED_IN, {
                'timestamp': now.isoformat(),
                'user_agent': user_agent
            }, now=now)
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Failed to log sign-in for user {user_id}: {e}")

        return {
            'activity_recorded': recorded,
            'responded_check_id': check.id if check else None
        }

    def time_since_last_activity(self, user_id: int, now: Optional[datetime] = None) -> Optional[timedelta]:
        profile = db.session.get(Profile, user_id)
        if profile is None or profile.last_active is None:
            return None
        return (now or datetime.utcnow()) - profile.last_active
