# ifimgone/services/notification_client.py
"""
Notification collaborator adapters.

The trigger core only needs "send this templated email and give me the
provider id back". Two transports satisfy that contract:

- FunctionsNotificationClient posts JSON to the hosted email functions
  (send-email, send-inactivity-warning, send-message-delivery,
  send-verification-email) and returns the provider id from the response.
- MailNotificationClient renders the same templates locally with Jinja and
  sends them through Flask-Mail.

Both raise NotificationError subclasses on failure; neither retries, retries
belong to the caller.
"""
import logging
from typing import Any, Dict, Optional

import requests
from flask import current_app, render_template
from flask_mail import Message as MailMessage

from ifimgone.exceptions import (
    ConfigurationError,
    NotificationRejectedError,
    NotificationTransportError,
    UnknownTemplateError,
)

logger = logging.getLogger(__name__)

INACTIVITY_WARNING = 'inactivity-warning'
MESSAGE_DELIVERY = 'message-delivery'
CONTACT_VERIFICATION = 'contact-verification'

# template -> (functions endpoint, mail template stem, default subject)
TEMPLATES = {
    INACTIVITY_WARNING: (
        'send-inactivity-warning',
        'emails/inactivity_warning',
        "Activity Check Required - If I'm Gone"
    ),
    MESSAGE_DELIVERY: (
        'send-message-delivery',
        'emails/message_delivery',
        'A Special Message from {sender_name}'
    ),
    CONTACT_VERIFICATION: (
        'send-verification-email',
        'emails/contact_verification',
        "Trusted Contact Verification - If I'm Gone"
    ),
}


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


class NotificationClient:
    """Contract shared by every transport"""

    def send_email(self, to: str, subject: str, html: str, text: Optional[str] = None) -> Optional[str]:
        raise NotImplementedError

    def send_template(self, template: str, to: str, **variables: Any) -> Optional[str]:
        raise NotImplementedError

    @staticmethod
    def _lookup(template: str):
        try:
            return TEMPLATES[template]
        except KeyError:
            raise UnknownTemplateError(f"Unknown email template: {template}")


class FunctionsNotificationClient(NotificationClient):
    """Calls the hosted email functions over HTTP"""

    def __init__(self, base_url: str, api_key: Optional[str] = None, timeout: Optional[float] = 30.0,
                 session: Optional[requests.Session] = None):
        if not base_url:
            raise ConfigurationError("NOTIFICATION_FUNCTIONS_URL is not set")
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def send_email(self, to, subject, html, text=None):
        payload = {'to': to, 'subject': subject, 'html': html}
        if text:
            payload['text'] = text
        return self._invoke('send-email', payload)

    def send_template(self, template, to, **variables):
        function_name, _, _ = self._lookup(template)
        payload = {'to': to}
        payload.update({_camel(key): value for key, value in variables.items()})
        return self._invoke(function_name, payload)

    def _invoke(self, function_name: str, payload: Dict[str, Any]) -> Optional[str]:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f"Bearer {self.api_key}"

        url = f"{self.base_url}/{function_name}"
        try:
            response = self.session.post(url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Notification function {function_name} unreachable: {e}")
            raise NotificationTransportError(str(e)) from e

        if response.status_code >= 400:
            logger.error(f"Notification function {function_name} failed: {response.status_code} - {response.text}")
            raise NotificationRejectedError(
                f"{function_name} responded with status {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        provider_id = data.get('id')
        logger.info(f"Notification {function_name} sent to {payload.get('to')} (id={provider_id})")
        return provider_id


class MailNotificationClient(NotificationClient):
    """Renders the email templates locally and sends them with Flask-Mail"""

    def __init__(self, mail, sender: Optional[str] = None):
        self.mail = mail
        self.sender = sender

    def send_email(self, to, subject, html, text=None):
        msg = MailMessage(
            subject=subject,
            recipients=[to],
            sender=self.sender or current_app.config.get('MAIL_DEFAULT_SENDER')
        )
        msg.html = html
        msg.body = text or "Please view this email in an HTML capable client."

        try:
            self.mail.send(msg)
        except Exception as e:
            logger.error(f"Failed to send email to {to}: {e}")
            raise NotificationTransportError(str(e)) from e

        logger.info(f"Email '{subject}' sent to {to}")
        return msg.msgId

    def send_template(self, template, to, **variables):
        _, stem, subject = self._lookup(template)
        context = dict(variables, company_name="If I'm Gone")
        html = render_template(f"{stem}.html", **context)
        text = render_template(f"{stem}.txt", **context)
        return self.send_email(to, subject.format(**context), html, text)


def build_notification_client(app) -> NotificationClient:
    """Pick the transport configured by NOTIFICATION_BACKEND"""
    backend = app.config.get('NOTIFICATION_BACKEND', 'functions')

    if backend == 'functions':
        return FunctionsNotificationClient(
            base_url=app.config.get('NOTIFICATION_FUNCTIONS_URL'),
            api_key=app.config.get('NOTIFICATION_API_KEY'),
            timeout=app.config.get('NOTIFICATION_TIMEOUT')
        )

    if backend == 'mail':
        from ifimgone.extensions import mail
        return MailNotificationClient(mail, sender=app.config.get('MAIL_DEFAULT_SENDER'))

    raise ConfigurationError(f"Unsupported NOTIFICATION_BACKEND: {backend}")
