"""
Gunicorn settings for the TurnoFácil scheduling API

Every call is a short, CPU-bound validation or review over the snapshot
in its body, so sync workers sized to the CPU count are enough.

Usage:
    gunicorn --config gunicorn_config.py wsgi:app
"""
import multiprocessing
import os


def _env_int(name, default):
    return int(os.getenv(name, default))


bind = os.getenv('GUNICORN_BIND', '0.0.0.0:8000')

workers = _env_int('GUNICORN_WORKERS', multiprocessing.cpu_count() * 2 + 1)
worker_class = 'sync'
timeout = _env_int('GUNICORN_TIMEOUT', 30)
graceful_timeout = _env_int('GUNICORN_GRACEFUL_TIMEOUT', 30)
keepalive = _env_int('GUNICORN_KEEPALIVE', 5)

# Recycle workers so the per-process query cache cannot grow without bound
max_requests = _env_int('GUNICORN_MAX_REQUESTS', 5000)
max_requests_jitter = _env_int('GUNICORN_MAX_REQUESTS_JITTER', 500)

accesslog = os.getenv('GUNICORN_ACCESS_LOG', '-')
errorlog = os.getenv('GUNICORN_ERROR_LOG', '-')
loglevel = os.getenv('GUNICORN_LOG_LEVEL', 'info')

proc_name = 'turnofacil_api'

raw_env = [f"FLASK_ENV={os.getenv('FLASK_ENV', 'production')}"]


def when_ready(server):
    server.log.info("TurnoFácil API listening on %s with %s workers", bind, workers)


def worker_abort(worker):
    worker.log.warning("Worker %s aborted, likely a request over %ss", worker.pid, timeout)
