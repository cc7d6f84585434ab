"""Gunicorn configuration file."""

import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# One worker: the sync pass lock and the in-memory storage fallback live in
# the process. Threads serve concurrent requests.
workers = 1
worker_class = "gthread"
threads = int(os.getenv("GUNICORN_THREADS", "4"))

# A pass uploads records one by one, each bounded by SYNC_TIMEOUT_SECONDS
timeout = int(os.getenv("GUNICORN_TIMEOUT", "300"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

# Logging
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")

reload = os.getenv("FLASK_ENV", "production") == "development"
preload_app = False


def on_starting(server):
    """Log when the server is starting."""
    server.log.info("drillsync server is starting")


def worker_exit(server, worker):
    """Log when a worker exits."""
    server.log.info(f"Worker {worker.pid} exited")
