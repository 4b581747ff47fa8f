#!/usr/bin/env python3
# backend/run_celery_worker.py
"""
Development Celery worker runner.

Consumes the notification and scheduling queues.
"""
import os
import subprocess
import sys

if __name__ == "__main__":
    queues = os.getenv("CELERY_QUEUES") or "celery,notifications,scheduling"
    print(f"Starting Celery worker, consuming queues: {queues}")

    cmd = [
        sys.executable,
        "-m",
        "celery",
        "-A",
        "clinicbook.tasks.celery_app",
        "worker",
        "--loglevel=info",
        "--concurrency=2",
        "--max-tasks-per-child=100",
        "-Q",
        queues,
    ]
    subprocess.run(cmd, check=False)
