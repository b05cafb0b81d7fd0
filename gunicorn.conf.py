"""
Production configuration for the Purine Vision API.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes; each one only holds an HTTP client, so scale with cores
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
# Must outlive the model request timeout (ARK_TIMEOUT, 30s by default)
timeout = 60
keepalive = 2

# Restart workers after this many requests, to help prevent memory leaks
max_requests = 1000
max_requests_jitter = 50

# Logging
loglevel = "info"
accesslog = "-"
errorlog = "-"

# Process naming
proc_name = "purine_vision_api"

# Server mechanics
daemon = False
pidfile = "/tmp/purine_vision_api.pid"
umask = 0
user = None
group = None
tmp_upload_dir = None

# Application specific
preload_app = False
sendfile = False

# Worker tmp directory
worker_tmp_dir = "/dev/shm"

# Maximum allowed header size
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190
