# ifimgone/celery_app.py
"""
Celery application for the periodic sweeps.

Start the scheduler and a worker with:

    celery -A worker.celery_app beat
    celery -A worker.celery_app worker
"""
import logging
import os

from celery import Celery
from celery.signals import (
    worker_ready,
    worker_shutdown,
    task_prerun,
    task_postrun,
    task_failure
)

logger = logging.getLogger(__name__)

# =============================================================================
# CELERY CONFIGURATION
# =============================================================================

celery_app = Celery('ifimgone')

celery_config = {
    # Broker and Backend
    'broker_url': os.getenv('CELERY_BROKER_URL', 'redis://localhost:6379/0'),
    'result_backend': os.getenv('CELERY_RESULT_BACKEND', 'redis://localhost:6379/0'),

    # Serialization
    'task_serializer': 'json',
    'accept_content': ['json'],
    'result_serializer': 'json',

    # Timezone
    'timezone': 'UTC',
    'enable_utc': True,

    # Task discovery
    'include': ['ifimgone.tasks.trigger_tasks'],

    # Worker configuration
    'worker_prefetch_multiplier': 1,
    'task_acks_late': True,

    # Task routing
    'task_routes': {
        'ifimgone.run_inactivity_sweep': {'queue': 'sweeps'},
        'ifimgone.run_date_sweep': {'queue': 'sweeps'},
        'ifimgone.deliver_message': {'queue': 'deliveries'},
    },
    'task_default_queue': 'default',

    # Result backend settings
    'result_expires': 3600,

    # A sweep runs to completion; the hard limit only guards against hangs
    'task_time_limit': 1800,
    'task_soft_time_limit': 1500,

    # Logging
    'worker_log_format': '[%(asctime)s: %(levelname)s/%(processName)s] %(message)s',
    'worker_task_log_format': '[%(asctime)s: %(levelname)s/%(processName)s][%(task_name)s(%(task_id)s)] %(message)s',
}

celery_app.conf.update(celery_config)

# =============================================================================
# CELERY SIGNALS
# =============================================================================


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    logger.info("Celery worker ready to receive tasks")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("Celery worker shutting down")


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, **kwds):
    logger.info(f"Starting task: {task.name} (ID: {task_id})")


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, args=None, kwargs=None, retval=None, state=None, **kwds):
    if state == 'SUCCESS':
        logger.info(f"Completed task: {task.name} (ID: {task_id})")
    else:
        logger.warning(f"Task finished with state {state}: {task.name} (ID: {task_id})")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, traceback=None, einfo=None, **kwds):
    logger.error(f"Task failed: {sender.name} (ID: {task_id}) - {exception}")

# =============================================================================
# CELERY APP FACTORY
# =============================================================================


def create_celery_app(app=None):
    """
    Bind the Celery app to a Flask application: broker settings and the beat
    schedule come from the Flask config and every task runs inside an app
    context.
    """
    if app is not None:
        from ifimgone.tasks import get_beat_schedule

        celery_app.conf.update(
            broker_url=app.config.get('CELERY_BROKER_URL', celery_config['broker_url']),
            result_backend=app.config.get('CELERY_RESULT_BACKEND', celery_config['result_backend']),
            beat_schedule=get_beat_schedule(app.config),
        )

        class ContextTask(celery_app.Task):
            """Make celery tasks work with Flask app context."""
            def __call__(self, *args, **kwargs):
                with app.app_context():
                    return self.run(*args, **kwargs)

        celery_app.Task = ContextTask
        logger.info("Celery app configured with Flask context")

    return celery_app
