"""
Gunicorn configuration for the Road Map analytics API.

Run with:  gunicorn roadmap.main:app -c gunicorn.conf.py
Env vars that override defaults:
  PORT     TCP port to bind (default: 8000)
  WORKERS  number of worker processes (default: 2)
  TIMEOUT  seconds before a silent worker is killed (default: 120)
"""
import os

bind = f"0.0.0.0:{os.environ.get('PORT', '8000')}"

# Reports are CPU-light and DB-bound; two workers suit a small container.
workers = int(os.environ.get("WORKERS", "2"))

# Each worker runs Uvicorn's ASGI event loop inside Gunicorn's process manager.
worker_class = "uvicorn.workers.UvicornWorker"

keepalive = 5

# Wide date ranges over a large goals table can take a while.
timeout = int(os.environ.get("TIMEOUT", "120"))

# stdout only; application logs go through roadmap.core.logging.
loglevel = os.environ.get("LOG_LEVEL", "info").lower()
accesslog = "-"
errorlog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)sB %(D)sµs'

graceful_timeout = 30
