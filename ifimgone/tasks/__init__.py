# ifimgone/tasks/__init__.py
"""
Celery tasks package.

Task modules register themselves on ifimgone.celery_app through the
'include' setting; this module only holds the beat schedule.
"""
from typing import Any, Dict, Mapping


def get_beat_schedule(config: Mapping[str, Any]) -> Dict[str, Any]:
    """Interval schedule for the two sweeps, built from the Flask config"""
    return {
        'inactivity-sweep': {
            'task': 'ifimgone.run_inactivity_sweep',
            'schedule': float(config.get('INACTIVITY_SWEEP_INTERVAL_SECONDS', 3600)),
            'options': {'queue': 'sweeps'}
        },
        'date-sweep': {
            'task': 'ifimgone.run_date_sweep',
            'schedule': float(config.get('DATE_SWEEP_INTERVAL_SECONDS', 900)),
            'options': {'queue': 'sweeps'}
        },
    }


__all__ = ['get_beat_schedule']
