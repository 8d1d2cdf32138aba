#!/usr/bin/env python3
"""
Celery entry point.

    celery -A worker.celery_app worker -Q default,sweeps,deliveries --loglevel=info
    celery -A worker.celery_app beat --loglevel=info

Run exactly one beat process; the sweeps do not coordinate across schedulers.
"""
from ifimgone import create_app
from ifimgone.celery_app import create_celery_app

flask_app = create_app()
celery_app = create_celery_app(flask_app)
