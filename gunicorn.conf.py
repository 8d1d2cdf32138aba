import multiprocessing
import os

bind = os.getenv('GUNICORN_BIND', '127.0.0.1:5000')

# Request handlers are short and synchronous; sweeps run in the Celery worker
workers = int(os.getenv('GUNICORN_WORKERS', multiprocessing.cpu_count() + 1))
worker_class = "sync"
timeout = 60

proc_name = 'ifimgone-backend'

# Gunicorn's own logs go to stdout next to the app's console handler
accesslog = '-'
errorlog = '-'
loglevel = os.getenv('LOG_LEVEL', 'info').lower()

raw_env = [
    'FLASK_CONFIG=production',
]
