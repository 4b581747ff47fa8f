#!/usr/bin/env python3
# backend/run.py
"""
Development API server runner.

Serves clinicbook.main:app with auto-reload; configuration comes from
CLINICBOOK_* environment variables or backend/.env.
"""
import os

import uvicorn

if __name__ == "__main__":
    host = os.getenv("CLINICBOOK_HOST", "0.0.0.0")
    port = int(os.getenv("CLINICBOOK_PORT", "8000"))
    print(f"Starting clinicbook API at http://{host}:{port} (docs at /docs)")
    uvicorn.run("clinicbook.main:app", host=host, port=port, reload=True, log_level="info")
