# ifimgone/tasks/trigger_tasks.py
"""
Celery wrappers around the trigger evaluator sweeps and the dispatcher.

The tasks only look up the shared services and return their summaries; all
retry and failure isolation lives in the services themselves.
"""
import logging
from typing import Any, Dict, Optional

from ifimgone.celery_app import celery_app
from ifimgone.services import get_delivery_dispatcher, get_trigger_evaluator

logger = logging.getLogger(__name__)


@celery_app.task(name='ifimgone.run_inactivity_sweep')
def run_inactivity_sweep() -> Dict[str, Any]:
    """Open, warn about and expire inactivity checks"""
    return get_trigger_evaluator().run_inactivity_sweep()


@celery_app.task(name='ifimgone.run_date_sweep')
def run_date_sweep() -> Dict[str, Any]:
    """Deliver date-triggered messages whose trigger_date has passed"""
    return get_trigger_evaluator().run_date_sweep()


@celery_app.task(name='ifimgone.deliver_message')
def deliver_message(message_id: int, reason: Optional[str] = None) -> Dict[str, Any]:
    result = get_delivery_dispatcher().deliver(message_id, reason=reason)
    logger.info(f"deliver_message({message_id}) -> {result.to_dict()}")
    return result.to_dict()


__all__ = [
    'run_inactivity_sweep',
    'run_date_sweep',
    'deliver_message',
]
