from datetime import timedelta

import pytest
from flask_jwt_extended import create_access_token

from ifimgone.models import ActivityLog, InactivityCheck, Message

from tests.legacy_test_utils import NOW


@pytest.fixture
def auth_headers(app):
    def _headers(profile):
        token = create_access_token(identity=str(profile.id))
        return {'Authorization': f'Bearer {token}'}
    return _headers


class TestActivityEndpoints:

    def test_sign_in_resolves_pending_check(self, client, utils, auth_headers):
        profile = utils.create_test_profile(days_inactive=35)
        check = utils.create_test_check(profile, created_at=NOW - timedelta(days=1))

        response = client.post('/api/activity/sign-in', headers=auth_headers(profile))

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['activity_recorded'] is True
        assert data['responded_check_id'] == check.id
        assert utils.checks(profile.id)[0].status == InactivityCheck.STATUS_RESPONDED
        assert len(utils.logs(profile.id, ActivityLog.USER_SIGNED_IN)) == 1

    def test_sign_in_requires_token(self, client):
        response = client.post('/api/activity/sign-in')
        assert response.status_code == 401

    def test_sign_in_unknown_profile(self, client, utils, app):
        token = create_access_token(identity='98765')
        response = client.post('/api/activity/sign-in', headers={'Authorization': f'Bearer {token}'})
        assert response.status_code == 404

    def test_heartbeat_is_debounced(self, client, utils, auth_headers):
        profile = utils.create_test_profile()
        headers = auth_headers(profile)

        first = client.post('/api/activity/heartbeat', headers=headers)
        second = client.post('/api/activity/heartbeat', headers=headers)

        assert first.get_json()['activity_recorded'] is True
        assert second.get_json()['activity_recorded'] is False
        assert utils.reload(profile).last_active is not None

    def test_status_reports_pending_check(self, client, utils, auth_headers):
        profile = utils.create_test_profile(days_inactive=35, now=NOW)
        check = utils.create_test_check(profile)

        response = client.get('/api/activity/status', headers=auth_headers(profile))

        assert response.status_code == 200
        data = response.get_json()
        assert data['inactivity_threshold'] == 30
        assert data['days_inactive'] >= 35
        assert data['seconds_since_last_activity'] > 0
        assert data['pending_check']['id'] == check.id

    def test_status_without_activity(self, client, utils, auth_headers):
        profile = utils.create_test_profile()

        data = client.get('/api/activity/status', headers=auth_headers(profile)).get_json()

        assert data['last_active'] is None
        assert data['seconds_since_last_activity'] is None
        assert data['pending_check'] is None
        assert data['profile']['email'] == profile.email
        assert data['recent_activity'] == []

    def test_status_lists_recent_activity(self, client, utils, auth_headers):
        profile = utils.create_test_profile()
        headers = auth_headers(profile)
        client.post('/api/activity/sign-in', headers=headers)

        data = client.get('/api/activity/status', headers=headers).get_json()

        assert [entry['action'] for entry in data['recent_activity']] == [ActivityLog.USER_SIGNED_IN]


class TestReleaseEndpoint:

    def test_release_with_valid_key(self, client, notifier, utils):
        profile = utils.create_test_profile()
        recipient = utils.create_test_recipient(profile)
        message = utils.create_test_message(profile, [recipient], trigger_type=Message.TRIGGER_MANUAL)
        contact, key = utils.create_test_trusted_contact(profile)

        response = client.post('/api/releases', json={'contact_id': contact.id, 'release_key': key})

        assert response.status_code == 200
        assert response.get_json()['released_message_ids'] == [message.id]
        assert utils.reload(message).status == Message.STATUS_DELIVERED

    def test_release_with_bad_key_is_forbidden(self, client, notifier, utils):
        profile = utils.create_test_profile()
        contact, _ = utils.create_test_trusted_contact(profile)

        response = client.post('/api/releases', json={'contact_id': contact.id, 'release_key': 'rk_wrong'})

        assert response.status_code == 403
        assert response.get_json()['success'] is False
        assert notifier.sent == []

    def test_release_validates_payload(self, client):
        response = client.post('/api/releases', json={'release_key': 'rk_x'})

        assert response.status_code == 400
        assert 'contact_id' in response.get_json()['errors']

    def test_release_requires_json(self, client):
        response = client.post('/api/releases', data='contact_id=1')
        assert response.status_code == 400


class TestContactVerificationEndpoints:

    def test_owner_requests_and_contact_verifies(self, client, notifier, utils, auth_headers):
        profile = utils.create_test_profile()
        contact, _ = utils.create_test_trusted_contact(profile, verified=False)

        response = client.post(f'/api/contacts/{contact.id}/verification', headers=auth_headers(profile))

        assert response.status_code == 200
        assert response.get_json()['verification_status'] == 'pending'
        token = notifier.sent[-1]['variables']['verification_token']

        response = client.post('/api/contacts/verify', json={'token': token})

        assert response.status_code == 200
        data = response.get_json()
        assert data['contact_id'] == contact.id
        assert data['release_key'].startswith('rk_')
        assert utils.reload(contact).is_verified

    def test_request_requires_token(self, client, utils):
        profile = utils.create_test_profile()
        contact, _ = utils.create_test_trusted_contact(profile, verified=False)

        assert client.post(f'/api/contacts/{contact.id}/verification').status_code == 401

    def test_request_for_someone_elses_contact_is_not_found(self, client, notifier, utils, auth_headers):
        profile = utils.create_test_profile()
        contact, _ = utils.create_test_trusted_contact(profile, verified=False)
        stranger = utils.create_test_profile()

        response = client.post(f'/api/contacts/{contact.id}/verification', headers=auth_headers(stranger))

        assert response.status_code == 404
        assert response.get_json()['success'] is False
        assert notifier.sent == []

    def test_bad_token_is_rejected(self, client):
        response = client.post('/api/contacts/verify', json={'token': 'nope'})

        assert response.status_code == 400
        assert response.get_json()['error'] == 'Invalid or expired verification token'

    def test_verify_validates_payload(self, client):
        response = client.post('/api/contacts/verify', json={})

        assert response.status_code == 400
        assert 'token' in response.get_json()['errors']


class TestHealthEndpoints:

    def test_health(self, client, utils):
        utils.create_test_profile()

        response = client.get('/health')

        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'healthy'
        assert data['stats']['profiles'] == 1

    def test_live(self, client):
        response = client.get('/live')
        assert response.status_code == 200
        assert response.get_json()['status'] == 'alive'
