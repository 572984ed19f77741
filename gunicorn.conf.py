"""
Gunicorn configuration for production deployment.

All workers share one Anchor workspace on disk and runs are serialized per
worker, so the default is a single worker with a long timeout: a full
`anchor build` + `anchor test` cycle can take several minutes.
"""
import os

# Server Socket
bind = f"{os.getenv('HOST', '0.0.0.0')}:{os.getenv('PORT', '3000')}"
backlog = 64

# Worker Processes
workers = int(os.getenv('GUNICORN_WORKERS', '1'))  # >1 only with one workspace per worker
worker_class = 'uvicorn.workers.UvicornWorker'
max_requests = int(os.getenv('GUNICORN_MAX_REQUESTS', '500'))
max_requests_jitter = int(os.getenv('GUNICORN_MAX_REQUESTS_JITTER', '25'))
timeout = int(os.getenv('GUNICORN_TIMEOUT', '1800'))  # Must exceed build + test timeouts
graceful_timeout = 60
keepalive = 5

# Process Naming
proc_name = 'anchor-test-runner'

# Logging
accesslog = os.getenv('GUNICORN_ACCESS_LOG', '-')  # '-' means stdout
errorlog = os.getenv('GUNICORN_ERROR_LOG', '-')   # '-' means stderr
loglevel = os.getenv('GUNICORN_LOG_LEVEL', 'info')
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'

# Server Mechanics
daemon = False  # systemd or the container runtime supervises the process
pidfile = None
umask = 0o022
user = None
group = None

# Header limits only; body size is bounded by MAX_FILES_PER_REQUEST and MAX_FILE_SIZE_BYTES
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

# Development/Debug Settings
reload = os.getenv('GUNICORN_RELOAD', 'false').lower() == 'true'
reload_engine = 'auto'

preload_app = True


def on_starting(server):
    """Called just before the master process is initialized."""
    server.log.info("Starting Anchor Test Runner")


def when_ready(server):
    """Called just after the server is started."""
    server.log.info("Server is ready. Spawning workers")


def post_fork(server, worker):
    """Called just after a worker has been forked."""
    server.log.info(f"Worker spawned (pid: {worker.pid})")


def worker_abort(worker):
    """Called when a worker received the SIGABRT signal (usually a timeout)."""
    worker.log.info(f"Worker received SIGABRT signal (pid: {worker.pid})")
