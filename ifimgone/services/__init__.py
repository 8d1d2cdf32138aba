# ifimgone/services/__init__.py
"""
Service factory.

Services are plain objects built once per app by init_services() and kept in
app.extensions, so the sweeps, the API and the CLI share the same instances
(and tests can swap the notification client before anything runs).
"""
from flask import current_app

EXTENSION_KEY = 'ifimgone.services'


def init_services(app, notifier=None):
    from .activity_tracker import ActivityTracker
    from .contact_verification import ContactVerificationService
    from .delivery_dispatcher import DeliveryDispatcher
    from .inactivity_service import InactivityCheckService
    from .notification_client import build_notification_client
    from .release_service import ReleaseService
    from .trigger_evaluator import TriggerEvaluator

    notifier = notifier or build_notification_client(app)
    dispatcher = DeliveryDispatcher(notifier, max_attempts=app.config['DELIVERY_MAX_ATTEMPTS'])
    inactivity_service = InactivityCheckService(
        notifier,
        dispatcher,
        response_window_days=app.config['INACTIVITY_RESPONSE_WINDOW_DAYS'],
        warning_lead_days=app.config['INACTIVITY_WARNING_LEAD_DAYS'],
        warning_cooldown_hours=app.config['INACTIVITY_WARNING_COOLDOWN_HOURS']
    )

    services = {
        'notification_client': notifier,
        'delivery_dispatcher': dispatcher,
        'inactivity_service': inactivity_service,
        'activity_tracker': ActivityTracker(
            inactivity_service,
            debounce_seconds=app.config['ACTIVITY_DEBOUNCE_SECONDS']
        ),
        'trigger_evaluator': TriggerEvaluator(inactivity_service, dispatcher),
        'release_service': ReleaseService(dispatcher),
        'contact_verification_service': ContactVerificationService(
            notifier,
            token_ttl_days=app.config['CONTACT_VERIFICATION_TTL_DAYS']
        ),
    }
    app.extensions[EXTENSION_KEY] = services
    return services


def _get(name):
    return current_app.extensions[EXTENSION_KEY][name]


def get_notification_client():
    return _get('notification_client')


def get_delivery_dispatcher():
    return _get('delivery_dispatcher')


def get_inactivity_service():
    return _get('inactivity_service')


def get_activity_tracker():
    return _get('activity_tracker')


def get_trigger_evaluator():
    return _get('trigger_evaluator')


def get_release_service():
    return _get('release_service')


def get_contact_verification_service():
    return _get('contact_verification_service')


__all__ = [
    "init_services",
    "get_notification_client",
    "get_delivery_dispatcher",
    "get_inactivity_service",
    "get_activity_tracker",
    "get_trigger_evaluator",
    "get_release_service",
    "get_contact_verification_service",
]
