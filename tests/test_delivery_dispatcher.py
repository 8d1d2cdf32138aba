import pytest

from ifimgone.models import ActivityLog, Message
from ifimgone.services.delivery_dispatcher import DeliveryDispatcher
from ifimgone.services.notification_client import MESSAGE_DELIVERY
from ifimgone.utils.links import build_message_link, verify_message_signature

from tests.legacy_test_utils import NOW


@pytest.fixture
def three_recipients(utils):
    profile = utils.create_test_profile(full_name='Margaret Hale', days_inactive=1)
    recipients = [
        utils.create_test_recipient(profile, email=f'r{i}@example.com', name=f'Recipient {i}')
        for i in (1, 2, 3)
    ]
    message = utils.create_test_message(profile, recipients, title='Last letter')
    return profile, recipients, message


def test_second_recipient_failing_still_delivers(dispatcher, notifier, utils, three_recipients):
    profile, recipients, message = three_recipients
    notifier.fail_for.add('r2@example.com')

    result = dispatcher.deliver(message.id, now=NOW)

    assert result.delivered_count == 2
    assert result.failed_recipients == ['r2@example.com']
    assert result.is_partial
    assert result.status_changed
    message = utils.reload(message)
    assert message.status == Message.STATUS_DELIVERED
    assert message.delivered_at == NOW

    attempts = utils.logs(profile.id, ActivityLog.MESSAGE_DELIVERY_ATTEMPT)
    outcomes = {entry.details['recipient_email']: entry.details['outcome'] for entry in attempts}
    assert len(attempts) == 3
    assert outcomes == {
        'r1@example.com': 'success',
        'r2@example.com': 'failed',
        'r3@example.com': 'success',
    }
    failed = [entry for entry in attempts if entry.details['outcome'] == 'failed']
    assert len(failed) == 1
    assert failed[0].details['attempts'] == 2
    assert failed[0].details['error']

    assert len(notifier.failures) == 2
    assert len(utils.logs(profile.id, ActivityLog.MESSAGE_DELIVERED)) == 1


def test_delivered_message_is_never_sent_again(dispatcher, notifier, three_recipients):
    _, _, message = three_recipients
    dispatcher.deliver(message.id, now=NOW)
    notifier.sent.clear()

    result = dispatcher.deliver(message.id, now=NOW)

    assert result.skipped
    assert result.skip_reason == 'status_delivered'
    assert notifier.sent == []


def test_all_recipients_failing_keeps_draft(dispatcher, notifier, utils, three_recipients):
    profile, _, message = three_recipients
    notifier.fail_for.update({'r1@example.com', 'r2@example.com', 'r3@example.com'})

    result = dispatcher.deliver(message.id, now=NOW)

    assert result.delivered_count == 0
    assert not result.status_changed
    assert utils.reload(message).status == Message.STATUS_DRAFT
    failed = utils.logs(profile.id, ActivityLog.MESSAGE_DELIVERY_FAILED)
    assert len(failed) == 1
    assert failed[0].details['reason'] == 'all_recipients_failed'
    assert utils.logs(profile.id, ActivityLog.MESSAGE_DELIVERED) == []


def test_transient_failure_is_retried(dispatcher, notifier, utils):
    profile = utils.create_test_profile()
    recipient = utils.create_test_recipient(profile, email='only@example.com')
    message = utils.create_test_message(profile, [recipient])
    notifier.fail_next = 1

    result = dispatcher.deliver(message.id, now=NOW)

    assert result.delivered_count == 1
    attempt = utils.logs(profile.id, ActivityLog.MESSAGE_DELIVERY_ATTEMPT)[0]
    assert attempt.details['outcome'] == 'success'
    assert attempt.details['attempts'] == 2
    assert attempt.details['email_id'] == notifier.sent[0]['id']


def test_message_without_recipients(dispatcher, utils):
    profile = utils.create_test_profile()
    message = utils.create_test_message(profile, [])

    result = dispatcher.deliver(message.id, now=NOW)

    assert result.skipped
    assert result.skip_reason == 'no_recipients'
    assert utils.reload(message).status == Message.STATUS_DRAFT
    assert utils.logs(profile.id, ActivityLog.MESSAGE_DELIVERY_FAILED)[0].details['reason'] == 'no_recipients'


def test_missing_message(dispatcher):
    result = dispatcher.deliver(123456, now=NOW)
    assert result.skipped
    assert result.skip_reason == 'not_found'


def test_delivery_email_variables(dispatcher, notifier, utils):
    profile = utils.create_test_profile(full_name='Margaret Hale')
    recipient = utils.create_test_recipient(profile, email='nick@example.com', name='Nicholas')
    message = utils.create_test_message(profile, [recipient], title='For Nicholas', pin_hash='hashed-pin',
                                        trigger_type=Message.TRIGGER_DATE, trigger_date=NOW)

    dispatcher.deliver(message.id, now=NOW)

    sent = notifier.sent[0]
    assert sent['template'] == MESSAGE_DELIVERY
    assert sent['to'] == 'nick@example.com'
    variables = sent['variables']
    assert variables['recipient_name'] == 'Nicholas'
    assert variables['sender_name'] == 'Margaret Hale'
    assert variables['message_title'] == 'For Nicholas'
    assert variables['has_pin'] is True
    assert variables['delivery_reason'] == 'scheduled delivery'
    assert variables['message_link'] == build_message_link(message.id)


def test_message_link_is_stable_and_signed(app):
    link = build_message_link(7)

    assert link == build_message_link(7)
    assert link.startswith('https://app.test/message/7?sig=')
    signature = link.split('sig=')[1]
    assert verify_message_signature(7, signature)
    assert not verify_message_signature(8, signature)
    assert not verify_message_signature(7, '')


def test_deliver_inactivity_messages_only_touches_inactivity_drafts(dispatcher, utils):
    profile = utils.create_test_profile()
    recipient = utils.create_test_recipient(profile)
    first = utils.create_test_message(profile, [recipient])
    second = utils.create_test_message(profile, [recipient])
    already = utils.create_test_message(profile, [recipient], status=Message.STATUS_DELIVERED)
    manual = utils.create_test_message(profile, [recipient], trigger_type=Message.TRIGGER_MANUAL)

    summary = dispatcher.deliver_inactivity_messages(profile.id, check_id=99, now=NOW)

    assert summary['messages_found'] == 2
    assert summary['delivered_message_ids'] == [first.id, second.id]
    assert summary['failed_message_ids'] == []
    assert utils.reload(manual).status == Message.STATUS_DRAFT
    assert utils.reload(already).delivered_at is None
    entry = utils.logs(profile.id, ActivityLog.MESSAGES_DELIVERED_DUE_TO_INACTIVITY)[0]
    assert entry.details['inactivity_check_id'] == 99
    assert entry.details['messages_delivered'] == 2


def test_deliver_inactivity_messages_reports_failures(dispatcher, notifier, utils):
    profile = utils.create_test_profile()
    good = utils.create_test_recipient(profile, email='good@example.com')
    bad = utils.create_test_recipient(profile, email='bad@example.com')
    ok_message = utils.create_test_message(profile, [good])
    failing_message = utils.create_test_message(profile, [bad])
    notifier.fail_for.add('bad@example.com')

    summary = dispatcher.deliver_inactivity_messages(profile.id, check_id=1, now=NOW)

    assert summary['delivered_message_ids'] == [ok_message.id]
    assert summary['failed_message_ids'] == [failing_message.id]


def test_at_least_two_attempts(notifier):
    assert DeliveryDispatcher(notifier, max_attempts=1).max_attempts == 2
    assert DeliveryDispatcher(notifier, max_attempts=4).max_attempts == 4


def test_concurrent_delivery_stops_the_fan_out(dispatcher, notifier, utils, three_recipients):
    profile, _, message = three_recipients
    message_id = message.id

    def delivered_elsewhere(template, to):
        Message.query.filter_by(id=message_id).update(
            {Message.status: Message.STATUS_DELIVERED},
            synchronize_session=False
        )

    notifier.on_send = delivered_elsewhere

    result = dispatcher.deliver(message_id, now=NOW)

    assert result.skipped
    assert result.skip_reason == 'delivered_concurrently'
    assert not result.status_changed
    assert notifier.sent_to(MESSAGE_DELIVERY) == ['r1@example.com']
    assert utils.logs(profile.id, ActivityLog.MESSAGE_DELIVERED) == []
    assert len(utils.logs(profile.id, ActivityLog.MESSAGE_DELIVERY_ATTEMPT)) == 1
