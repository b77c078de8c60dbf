#!/usr/bin/env python3
# backend/run_celery_worker.py
"""
Development Celery worker for the outbox and maintenance queues.
"""
import os
from pathlib import Path
import subprocess
import sys

backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

if __name__ == "__main__":
    # CELERY_QUEUES overrides the default queue list
    queues = os.getenv("CELERY_QUEUES") or "notifications,maintenance,celery"
    print(f"Starting Celery worker, consuming queues: {queues}")

    cmd = [
        sys.executable,
        "-m",
        "celery",
        "-A",
        "marketplace.tasks.celery_app",
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--max-tasks-per-child=100",
        "-Q",
        queues,
    ]

    subprocess.run(cmd)
