from datetime import datetime, timedelta

from ifimgone.models import InactivityCheck, Message
from ifimgone.tasks import get_beat_schedule
from ifimgone.tasks.trigger_tasks import deliver_message, run_date_sweep, run_inactivity_sweep


def test_beat_schedule_uses_configured_intervals(app):
    schedule = get_beat_schedule(app.config)

    assert schedule['inactivity-sweep']['task'] == 'ifimgone.run_inactivity_sweep'
    assert schedule['inactivity-sweep']['schedule'] == 3600.0
    assert schedule['date-sweep']['task'] == 'ifimgone.run_date_sweep'
    assert schedule['date-sweep']['schedule'] == 900.0


def test_beat_schedule_overrides():
    schedule = get_beat_schedule({'INACTIVITY_SWEEP_INTERVAL_SECONDS': 60, 'DATE_SWEEP_INTERVAL_SECONDS': 30})
    assert schedule['inactivity-sweep']['schedule'] == 60.0
    assert schedule['date-sweep']['schedule'] == 30.0


def test_task_names():
    assert run_inactivity_sweep.name == 'ifimgone.run_inactivity_sweep'
    assert run_date_sweep.name == 'ifimgone.run_date_sweep'
    assert deliver_message.name == 'ifimgone.deliver_message'


def test_date_sweep_task_returns_summary(app, utils, notifier):
    profile = utils.create_test_profile()
    recipient = utils.create_test_recipient(profile)
    message = utils.create_test_message(profile, [recipient], trigger_type=Message.TRIGGER_DATE,
                                        trigger_date=datetime.utcnow() - timedelta(hours=1))

    summary = run_date_sweep.run()

    assert summary['outcomes'] == {'delivered': 1}
    assert utils.reload(message).status == Message.STATUS_DELIVERED


def test_inactivity_sweep_task(app, utils):
    profile = utils.create_test_profile(days_inactive=31, now=datetime.utcnow())

    summary = run_inactivity_sweep.run()

    assert summary['outcomes'] == {'check_opened': 1}
    assert len(utils.checks(profile.id, InactivityCheck.STATUS_PENDING)) == 1


def test_deliver_message_task(app, utils, notifier):
    profile = utils.create_test_profile()
    recipient = utils.create_test_recipient(profile, email='x@example.com')
    message = utils.create_test_message(profile, [recipient], trigger_type=Message.TRIGGER_MANUAL)

    result = deliver_message.run(message.id)

    assert result['delivered_count'] == 1
    assert result['skipped'] is False
    assert notifier.sent_to() == ['x@example.com']
