import os

# Orders live in process memory: one worker process, concurrency via threads
workers = 1

# Threads per worker (IO bound calls to inventory/payments)
worker_class = "gthread"
threads = int(os.getenv("GTHREADS", "4"))

# Timeouts
timeout = int(os.getenv("GUNI_TIMEOUT", "60"))
graceful_timeout = int(os.getenv("GUNI_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNI_KEEPALIVE", "5"))

# Recycling the worker would drop every order
max_requests = 0

wsgi_app = "config.wsgi:application"
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNI_LOGLEVEL", "info")
