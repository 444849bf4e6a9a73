#!/usr/bin/env python3
"""
Gunicorn configuration file for the Dockal backend
"""

import os
import multiprocessing

wsgi_app = "app:create_app()"

# Server socket
bind = f"0.0.0.0:{os.environ.get('PORT', 3000)}"
backlog = 2048

# Worker processes
workers = int(os.environ.get('WEB_CONCURRENCY', multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"
timeout = 30
keepalive = 2

# Restart workers after this many requests, with up to 50 requests variation
max_requests = 1000
max_requests_jitter = 50

preload_app = True

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.environ.get('LOG_LEVEL', 'info').lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Process naming
proc_name = 'dockal'

# SSL (if certificates are provided)
keyfile = os.environ.get('SSL_KEYFILE')
certfile = os.environ.get('SSL_CERTFILE')


def when_ready(server):
    server.log.info("Dockal backend is ready. Listening on %s", bind)


def post_fork(server, worker):
    server.log.info("Worker spawned (pid: %s)", worker.pid)
