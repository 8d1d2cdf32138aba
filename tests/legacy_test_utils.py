# tests/legacy_test_utils.py
"""
Testing utilities for the inactivity / delivery trigger core
Provides model factories, a recording notification client and query helpers
"""

import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from ifimgone.exceptions import NotificationRejectedError
from ifimgone.extensions import db
from ifimgone.models import (
    ActivityLog,
    InactivityCheck,
    Message,
    MessageRecipient,
    Profile,
    Recipient,
    TrustedContact,
)
from ifimgone.services.notification_client import NotificationClient

NOW = datetime(2024, 6, 1, 12, 0, 0)


class FakeNotifier(NotificationClient):
    """Records every send; addresses in fail_for raise on every attempt"""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.failures: List[Dict[str, Any]] = []
        self.fail_for = set()
        self.fail_next = 0
        self.on_send = None
        self._counter = 0

    def send_email(self, to, subject, html, text=None):
        return self._record('raw', to, {'subject': subject})

    def send_template(self, template, to, **variables):
        self._lookup(template)
        return self._record(template, to, variables)

    def _record(self, template, to, variables):
        if to in self.fail_for or self.fail_next > 0:
            self.fail_next = max(0, self.fail_next - 1)
            self.failures.append({'template': template, 'to': to})
            raise NotificationRejectedError(f"{template} to {to} rejected")

        if self.on_send is not None:
            self.on_send(template, to)

        self._counter += 1
        provider_id = f"email_{self._counter}"
        self.sent.append({'template': template, 'to': to, 'variables': variables, 'id': provider_id})
        return provider_id

    def sent_to(self, template: Optional[str] = None) -> List[str]:
        return [s['to'] for s in self.sent if template is None or s['template'] == template]

    def reset(self):
        self.sent.clear()
        self.failures.clear()
        self.fail_for.clear()
        self.fail_next = 0
        self.on_send = None


class LegacyTestUtils:
    """Factories for the trigger core models"""

    @staticmethod
    def create_test_profile(email: str = None, days_inactive: Optional[float] = None,
                            now: datetime = NOW, **kwargs) -> Profile:
        """Create a profile; days_inactive sets last_active relative to now"""
        profile_data = {
            'email': email or f'user_{uuid.uuid4().hex[:8]}@example.com',
            'full_name': 'Test User',
            'inactivity_threshold': 30,
            'last_active': now - timedelta(days=days_inactive) if days_inactive is not None else None,
            **kwargs
        }

        profile = Profile(**profile_data)
        db.session.add(profile)
        db.session.commit()
        return profile

    @staticmethod
    def create_test_recipient(profile: Profile, email: str = None, **kwargs) -> Recipient:
        recipient_data = {
            'user_id': profile.id,
            'name': 'Test Recipient',
            'email': email or f'recipient_{uuid.uuid4().hex[:8]}@example.com',
            'relationship': 'friend',
            **kwargs
        }

        recipient = Recipient(**recipient_data)
        db.session.add(recipient)
        db.session.commit()
        return recipient

    @staticmethod
    def create_test_message(profile: Profile, recipients: List[Recipient] = None,
                            trigger_type: str = Message.TRIGGER_INACTIVITY, **kwargs) -> Message:
        """Create a draft message linked to the given recipients"""
        message_data = {
            'user_id': profile.id,
            'title': 'For when I am gone',
            'content': 'Test message content',
            'format': 'text',
            'trigger_type': trigger_type,
            'status': Message.STATUS_DRAFT,
            **kwargs
        }

        message = Message(**message_data)
        db.session.add(message)
        db.session.flush()

        for recipient in recipients or []:
            db.session.add(MessageRecipient(message_id=message.id, recipient_id=recipient.id))

        db.session.commit()
        return message

    @staticmethod
    def create_test_check(profile: Profile, status: str = InactivityCheck.STATUS_PENDING,
                          created_at: datetime = NOW, window_days: int = 7, **kwargs) -> InactivityCheck:
        check_data = {
            'user_id': profile.id,
            'status': status,
            'created_at': created_at,
            'updated_at': created_at,
            'response_required_by': created_at + timedelta(days=window_days),
            **kwargs
        }

        check = InactivityCheck(**check_data)
        db.session.add(check)
        db.session.commit()
        return check

    @staticmethod
    def create_test_trusted_contact(profile: Profile, verified: bool = True,
                                    can_release: bool = True, **kwargs):
        """Create a trusted contact; returns (contact, release_key)"""
        contact_data = {
            'user_id': profile.id,
            'name': 'Trusted Person',
            'email': f'contact_{uuid.uuid4().hex[:8]}@example.com',
            'relationship': 'sibling',
            'can_release_messages': can_release,
            'verification_status': 'verified' if verified else 'pending',
            **kwargs
        }

        contact = TrustedContact(**contact_data)
        release_key = contact.issue_release_key()
        db.session.add(contact)
        db.session.commit()
        return contact, release_key

    @staticmethod
    def logs(user_id: int, action: str = None) -> List[ActivityLog]:
        query = ActivityLog.query.filter_by(user_id=user_id)
        if action:
            query = query.filter_by(action=action)
        return query.order_by(ActivityLog.id).all()

    @staticmethod
    def checks(user_id: int, status: str = None) -> List[InactivityCheck]:
        query = InactivityCheck.query.filter_by(user_id=user_id)
        if status:
            query = query.filter_by(status=status)
        return query.populate_existing().order_by(InactivityCheck.id).all()

    @staticmethod
    def reload(instance):
        db.session.refresh(instance)
        return instance
