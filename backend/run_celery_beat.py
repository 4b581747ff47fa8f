#!/usr/bin/env python3
# backend/run_celery_beat.py
"""
Development Celery beat runner.

Schedules the pending-hold and waitlist-offer expiry sweeps.
"""
import subprocess
import sys

if __name__ == "__main__":
    print("Starting Celery beat for the clinicbook sweeps")
    cmd = [sys.executable, "-m", "celery", "-A", "clinicbook.tasks.celery_app", "beat", "--loglevel=info"]
    subprocess.run(cmd, check=False)
