#!/usr/bin/env python3
# backend/run.py
"""
Development API server.

Uses DATABASE_URL from the environment (or .env); without one the
settings fall back to a local SQLite file.
"""
import os
from pathlib import Path
import sys

backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))
os.chdir(backend_dir)

os.environ.setdefault("ENVIRONMENT", "development")

import uvicorn

from marketplace.core.config import settings
from marketplace.init_db import init_db

if __name__ == "__main__":
    if settings.database_url.startswith("sqlite"):
        # No migrations for the local SQLite file; build the tables directly
        init_db()
    port = int(os.getenv("PORT", "8000"))
    print(f"Starting marketplace API on http://localhost:{port} (docs at /docs)")
    uvicorn.run("marketplace.main:app", host="0.0.0.0", port=port, reload=True, log_level="info")
