import pytest

from ifimgone import create_app
from ifimgone.extensions import db
from ifimgone.services import (
    get_activity_tracker,
    get_contact_verification_service,
    get_delivery_dispatcher,
    get_inactivity_service,
    get_release_service,
    get_trigger_evaluator,
)

from tests.legacy_test_utils import FakeNotifier, LegacyTestUtils


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def app(notifier):
    app = create_app('testing', notifier=notifier)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def utils(app):
    return LegacyTestUtils


@pytest.fixture
def tracker(app):
    return get_activity_tracker()


@pytest.fixture
def inactivity_service(app):
    return get_inactivity_service()


@pytest.fixture
def dispatcher(app):
    return get_delivery_dispatcher()


@pytest.fixture
def evaluator(app):
    return get_trigger_evaluator()


@pytest.fixture
def release_service(app):
    return get_release_service()


@pytest.fixture
def verification_service(app):
    return get_contact_verification_service()
